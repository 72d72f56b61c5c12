from .controller import DailyController, DailyState
from .steps import AutomationStep, parse_steps

__all__ = ["AutomationStep", "DailyController", "DailyState", "parse_steps"]
