from .browser import BrowserState, ProjectBrowser

__all__ = ["ProjectBrowser", "BrowserState"]
