"""
Keycloak operator: reconciles Keycloak / RH-SSO and PostgreSQL workloads and
plans safe image migrations.
"""

__version__ = "1.0.0"
