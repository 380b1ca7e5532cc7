from keycloak_operator.config.settings import Settings, settings

__all__ = ["Settings", "settings"]
