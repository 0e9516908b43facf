from services.context import ServiceContext, build_service_context

__all__ = ["ServiceContext", "build_service_context"]
