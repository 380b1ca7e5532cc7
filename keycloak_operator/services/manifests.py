"""
Kubernetes manifest builders for Keycloak, PostgreSQL and migration backups.

Manifests are plain dicts, ready to be sent to the Kubernetes API.
"""
from typing import Any, Dict, Optional

from keycloak_operator.config.settings import settings
from keycloak_operator.models.keycloak import Keycloak, KeycloakBackup

KEYCLOAK_STATEFULSET_NAME = "keycloak"
KEYCLOAK_SERVICE_NAME = "keycloak"
POSTGRESQL_DEPLOYMENT_NAME = "keycloak-postgresql"
POSTGRESQL_SERVICE_NAME = "keycloak-postgresql"
POSTGRESQL_PVC_NAME = "keycloak-postgresql-claim"
DATABASE_SECRET_NAME = "keycloak-db-secret"

KEYCLOAK_PORT = 8443
POSTGRESQL_PORT = 5432
BACKUP_MOUNT_PATH = "/backup"


def _labels(cr: Keycloak, component: str) -> Dict[str, str]:
    return {
        "app": "keycloak",
        "component": component,
        "keycloak.org/instance": cr.name,
    }


def _metadata(name: str, namespace: str, labels: Dict[str, str]) -> Dict[str, Any]:
    return {"name": name, "namespace": namespace, "labels": labels}


def _secret_env(name: str, key: str) -> Dict[str, Any]:
    return {
        "name": name,
        "valueFrom": {"secretKeyRef": {"name": DATABASE_SECRET_NAME, "key": key}},
    }


def _database_env() -> list:
    return [
        _secret_env("POSTGRESQL_USER", "POSTGRES_USERNAME"),
        _secret_env("POSTGRESQL_PASSWORD", "POSTGRES_PASSWORD"),
        _secret_env("POSTGRESQL_DATABASE", "POSTGRES_DATABASE"),
    ]


def _pvc(name: str, namespace: str, labels: Dict[str, str], size: str) -> Dict[str, Any]:
    return {
        "apiVersion": "v1",
        "kind": "PersistentVolumeClaim",
        "metadata": _metadata(name, namespace, labels),
        "spec": {
            "accessModes": ["ReadWriteOnce"],
            "resources": {"requests": {"storage": size}},
        },
    }


def keycloak_statefulset(cr: Keycloak, image: str) -> Dict[str, Any]:
    """Build the Keycloak (or RH-SSO) StatefulSet."""
    labels = _labels(cr, "keycloak")
    return {
        "apiVersion": "apps/v1",
        "kind": "StatefulSet",
        "metadata": _metadata(KEYCLOAK_STATEFULSET_NAME, cr.namespace, labels),
        "spec": {
            "replicas": cr.spec.instances,
            "serviceName": KEYCLOAK_SERVICE_NAME,
            "selector": {"matchLabels": labels},
            "template": {
                "metadata": {"labels": labels},
                "spec": {
                    "containers": [
                        {
                            "name": "keycloak",
                            "image": image,
                            "ports": [{"name": "https", "containerPort": KEYCLOAK_PORT}],
                            "env": [
                                {"name": "DB_VENDOR", "value": "POSTGRES"},
                                {"name": "DB_ADDR", "value": POSTGRESQL_SERVICE_NAME},
                                _secret_env("DB_USER", "POSTGRES_USERNAME"),
                                _secret_env("DB_PASSWORD", "POSTGRES_PASSWORD"),
                                _secret_env("DB_DATABASE", "POSTGRES_DATABASE"),
                            ],
                        }
                    ]
                },
            },
        },
    }


def keycloak_service(cr: Keycloak) -> Dict[str, Any]:
    """Build the Keycloak Service."""
    labels = _labels(cr, "keycloak")
    return {
        "apiVersion": "v1",
        "kind": "Service",
        "metadata": _metadata(KEYCLOAK_SERVICE_NAME, cr.namespace, labels),
        "spec": {
            "selector": labels,
            "ports": [{"name": "https", "port": KEYCLOAK_PORT, "targetPort": KEYCLOAK_PORT}],
        },
    }


def postgresql_pvc(cr: Keycloak) -> Dict[str, Any]:
    """Build the PostgreSQL data volume claim."""
    return _pvc(
        POSTGRESQL_PVC_NAME,
        cr.namespace,
        _labels(cr, "database"),
        settings.database_storage_size,
    )


def postgresql_deployment(cr: Keycloak, image: str) -> Dict[str, Any]:
    """Build the PostgreSQL Deployment (single replica, recreate strategy)."""
    labels = _labels(cr, "database")
    return {
        "apiVersion": "apps/v1",
        "kind": "Deployment",
        "metadata": _metadata(POSTGRESQL_DEPLOYMENT_NAME, cr.namespace, labels),
        "spec": {
            "replicas": 1,
            "strategy": {"type": "Recreate"},
            "selector": {"matchLabels": labels},
            "template": {
                "metadata": {"labels": labels},
                "spec": {
                    "containers": [
                        {
                            "name": "postgresql",
                            "image": image,
                            "ports": [{"name": "postgresql", "containerPort": POSTGRESQL_PORT}],
                            "env": _database_env(),
                            "volumeMounts": [
                                {"name": "data", "mountPath": "/var/lib/pgsql/data"}
                            ],
                        }
                    ],
                    "volumes": [
                        {"name": "data", "persistentVolumeClaim": {"claimName": POSTGRESQL_PVC_NAME}}
                    ],
                },
            },
        },
    }


def postgresql_service(cr: Keycloak) -> Dict[str, Any]:
    """Build the PostgreSQL Service."""
    labels = _labels(cr, "database")
    return {
        "apiVersion": "v1",
        "kind": "Service",
        "metadata": _metadata(POSTGRESQL_SERVICE_NAME, cr.namespace, labels),
        "spec": {
            "selector": labels,
            "ports": [{"name": "postgresql", "port": POSTGRESQL_PORT, "targetPort": POSTGRESQL_PORT}],
        },
    }


def postgresql_backup_job(backup: KeycloakBackup, cr: Keycloak, image: str) -> Dict[str, Any]:
    """
    Build a one-time Job that dumps the database into the backup volume claim.

    `image` must be binary compatible with the running database, so callers
    pass the currently running PostgreSQL image during a migration.
    """
    labels = _labels(cr, "backup")
    labels["keycloak.org/backup"] = backup.name
    dump = (
        f"pg_dump -h {POSTGRESQL_SERVICE_NAME} -p {POSTGRESQL_PORT} "
        f"-U $POSTGRESQL_USER -d $POSTGRESQL_DATABASE "
        f"-f {BACKUP_MOUNT_PATH}/{backup.name}.sql"
    )
    env = _database_env()
    env.append(_secret_env("PGPASSWORD", "POSTGRES_PASSWORD"))
    return {
        "apiVersion": "batch/v1",
        "kind": "Job",
        "metadata": _metadata(backup.name, backup.namespace, labels),
        "spec": {
            "backoffLimit": 2,
            "template": {
                "metadata": {"labels": labels},
                "spec": {
                    "restartPolicy": "Never",
                    "containers": [
                        {
                            "name": "backup",
                            "image": image,
                            "command": ["/bin/sh", "-c", dump],
                            "env": env,
                            "volumeMounts": [
                                {"name": "backup", "mountPath": BACKUP_MOUNT_PATH}
                            ],
                        }
                    ],
                    "volumes": [
                        {"name": "backup", "persistentVolumeClaim": {"claimName": backup.name}}
                    ],
                },
            },
        },
    }


def postgresql_backup_pvc(backup: KeycloakBackup) -> Dict[str, Any]:
    """Build the volume claim a migration backup is written to."""
    labels = {"app": "keycloak", "component": "backup", "keycloak.org/backup": backup.name}
    return _pvc(backup.name, backup.namespace, labels, settings.backup_storage_size)


def container_image(manifest: Dict[str, Any]) -> str:
    """Return the image of the first container of a workload manifest."""
    return manifest["spec"]["template"]["spec"]["containers"][0]["image"]


def replica_count(manifest: Dict[str, Any]) -> Optional[int]:
    return manifest.get("spec", {}).get("replicas")
