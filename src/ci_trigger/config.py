from typing import Literal

from pydantic_settings import BaseSettings
from sanic.log import logger


class Config(BaseSettings):
    WEBHOOK_SECRET: str
    PRIVATE_KEY: str
    APP_ID: int

    ALLOW_ORG: str = "giantswarm"
    ALLOWED_BOT_ID: str = "29139614"

    DEFAULT_NAMESPACE: str = "tekton-pipelines"

    KUBE_API_URL: str = "https://kubernetes.default.svc"
    KUBE_TOKEN: str = ""
    KUBE_TOKEN_PATH: str = "/var/run/secrets/kubernetes.io/serviceaccount/token"
    KUBE_CA_PATH: str | None = None

    IMAGE_PULL_SECRETS: list[str] = [
        "quay-imagepull-secret",
        "gsociprivate-pull-secret",
    ]
    WORKSPACE_SIZE: str = "5Gi"

    OVERRIDE_LOGGING: Literal[
        "CRITICAL",
        "FATAL",
        "ERROR",
        "WARNING",
        "WARN",
        "INFO",
        "DEBUG",
        "NOTSET",
    ] = "INFO"

    STERILE: bool = False

    def kube_token(self) -> str:
        """Return the cluster bearer token, falling back to the mounted service account token."""
        if self.KUBE_TOKEN:
            return self.KUBE_TOKEN
        with open(self.KUBE_TOKEN_PATH) as f:
            return f.read().strip()

    def print_config(self):
        """Print configuration values with sensitive attributes masked"""
        sensitive_attrs = {
            "WEBHOOK_SECRET",
            "PRIVATE_KEY",
            "KUBE_TOKEN",
        }

        logger.info("=== CI Trigger Configuration ===")
        for field_name, field_value in self.model_dump().items():
            if field_name in sensitive_attrs:
                logger.info(f"{field_name}: ***")
            else:
                logger.info(f"{field_name}: {field_value}")
        logger.info("================================")
