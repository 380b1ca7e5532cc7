"""
Image resolution for the managed workloads.
"""
from enum import Enum

from keycloak_operator.config.settings import settings
from keycloak_operator.models.keycloak import KeycloakSpec


class ImageRole(str, Enum):
    """Workload roles with their own container image."""
    KEYCLOAK = "keycloak"
    POSTGRESQL = "postgresql"


def resolve_image(spec: KeycloakSpec, role: ImageRole) -> str:
    """
    Return the image the given workload should run.

    A non-empty override in the spec wins, otherwise the default image is used.
    For the Keycloak role the profile selects between the Keycloak and RH-SSO
    override/default pair.
    """
    overrides = spec.image_overrides

    if role == ImageRole.POSTGRESQL:
        return overrides.postgresql or settings.postgresql_image

    if spec.is_rhsso:
        return overrides.rhsso or settings.rhsso_image
    return overrides.keycloak or settings.keycloak_image
