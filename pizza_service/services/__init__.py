from pizza_service.services.registry import ServiceRegistry

__all__ = ["ServiceRegistry"]
