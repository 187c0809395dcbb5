from snapshot_service.renderer.base import RenderError, Renderer, RenderSession, Viewport

__all__ = ["RenderError", "Renderer", "RenderSession", "Viewport"]
