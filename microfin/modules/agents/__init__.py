# Agents module
from microfin.modules.agents.models import Agent

__all__ = ["Agent"]
