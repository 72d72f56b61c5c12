from .service import AutomationRuntime, RuntimeStatus

__all__ = ["AutomationRuntime", "RuntimeStatus"]
