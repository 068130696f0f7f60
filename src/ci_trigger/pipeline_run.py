import re
from datetime import timedelta
from typing import Any

from pydantic import BaseModel, Field
from sanic.log import logger

from ci_trigger.config import Config
from ci_trigger.models import ChangedFiles, Pipeline, ServiceAccount, TriggerContext

LABEL_PREFIX = "cicd.giantswarm.io"
TIMEOUT_ANNOTATION = "tekton.dev/pipeline-timeout"
STORAGE_CLASS_ANNOTATION = f"{LABEL_PREFIX}/storage-class"

DEFAULT_TIMEOUT = "1h"
DEFAULT_STORAGE_CLASS = "efs-sc"

READ_WRITE_MANY = "ReadWriteMany"
READ_WRITE_ONCE = "ReadWriteOnce"

BOT_SUFFIX = "[bot]"

WORKSPACE_NAME = "shared"
RUN_AS_ID = 1000

_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")


def parse_duration(value: str) -> timedelta:
    """Parse a Go style duration such as ``1h30m``, ``90m`` or ``1.5h``."""
    if value.startswith("+"):
        value = value[1:]
    if value == "0":
        return timedelta(0)

    seconds = 0.0
    pos = 0
    for part in _DURATION_PART.finditer(value):
        if part.start() != pos:
            break
        seconds += float(part.group(1)) * _DURATION_UNITS[part.group(2)]
        pos = part.end()

    if pos == 0 or pos != len(value):
        raise ValueError(f"Invalid duration: {value!r}")
    return timedelta(seconds=seconds)


def format_duration(duration: timedelta) -> str:
    """Render ``duration`` the way Go's ``time.Duration.String`` does, e.g. ``1h0m0s``."""
    micros = duration // timedelta(microseconds=1)
    if micros == 0:
        return "0s"
    if micros < 1_000_000:
        return f"{micros / 1000:g}ms"

    hours, micros = divmod(micros, 3_600_000_000)
    minutes, micros = divmod(micros, 60_000_000)
    seconds, fraction = divmod(micros, 1_000_000)

    out = ""
    if hours:
        out += f"{hours}h"
    if hours or minutes:
        out += f"{minutes}m"
    out += str(seconds)
    if fraction:
        out += f".{fraction:06d}".rstrip("0")
    return out + "s"


def get_pipeline_timeout(pipeline: Pipeline) -> timedelta:
    raw = pipeline.annotations.get(TIMEOUT_ANNOTATION, DEFAULT_TIMEOUT)
    try:
        return parse_duration(raw)
    except ValueError:
        logger.warning("Invalid timeout annotation %r, using %s", raw, DEFAULT_TIMEOUT)
        return parse_duration(DEFAULT_TIMEOUT)


def get_workspace_storage(pipeline: Pipeline) -> tuple[str, str]:
    storage_class = pipeline.annotations.get(
        STORAGE_CLASS_ANNOTATION, DEFAULT_STORAGE_CLASS
    )
    # Only the default shared filesystem class supports multiple writers
    if storage_class == DEFAULT_STORAGE_CLASS:
        return storage_class, READ_WRITE_MANY
    return storage_class, READ_WRITE_ONCE


def label_safe_login(login: str) -> str:
    # `[` and `]` are not valid label characters
    return login.removesuffix(BOT_SUFFIX)


def changed_file_params(changed_files: ChangedFiles) -> dict[str, str]:
    return {
        "PR_FILES": ",".join(changed_files.all_files()),
        "PR_FILES_ADDED": ",".join(changed_files.added),
        "PR_FILES_CHANGED": ",".join(changed_files.changed),
        "PR_FILES_REMOVED": ",".join(changed_files.removed),
    }


class PipelineRun(BaseModel):
    generate_name: str
    namespace: str
    labels: dict[str, str]
    annotations: dict[str, str]

    pipeline_name: str
    timeout: timedelta
    service_account_name: str

    workspace_storage_class: str
    workspace_access_mode: str
    workspace_size: str = "5Gi"
    image_pull_secrets: list[str] = Field(default_factory=list)

    params: dict[str, str]

    def to_manifest(self) -> dict[str, Any]:
        """Render the ``tekton.dev/v1`` PipelineRun object for the cluster API."""
        return {
            "apiVersion": "tekton.dev/v1",
            "kind": "PipelineRun",
            "metadata": {
                "generateName": self.generate_name,
                "namespace": self.namespace,
                "labels": self.labels,
                "annotations": self.annotations,
            },
            "spec": {
                "pipelineRef": {"name": self.pipeline_name},
                "timeouts": {"pipeline": format_duration(self.timeout)},
                "params": [
                    {"name": name, "value": value}
                    for name, value in self.params.items()
                ],
                "taskRunTemplate": {
                    "serviceAccountName": self.service_account_name,
                    "podTemplate": {
                        "securityContext": {
                            "runAsGroup": RUN_AS_ID,
                            "runAsNonRoot": True,
                            "runAsUser": RUN_AS_ID,
                            "seccompProfile": {"type": "RuntimeDefault"},
                        },
                        "imagePullSecrets": [
                            {"name": name} for name in self.image_pull_secrets
                        ],
                    },
                },
                "workspaces": [
                    {
                        "name": WORKSPACE_NAME,
                        "volumeClaimTemplate": {
                            "spec": {
                                "storageClassName": self.workspace_storage_class,
                                "accessModes": [self.workspace_access_mode],
                                "resources": {
                                    "requests": {"storage": self.workspace_size}
                                },
                            }
                        },
                    }
                ],
            },
        }


def build_pipeline_run(
    pipeline: Pipeline,
    namespace: str,
    service_account: ServiceAccount,
    params: dict[str, str],
    changed_files: ChangedFiles,
    context: TriggerContext,
    config: Config,
) -> PipelineRun:
    timeout = get_pipeline_timeout(pipeline)
    logger.debug("Setting Pipeline timeout to: %s", format_duration(timeout))

    storage_class, access_mode = get_workspace_storage(pipeline)
    logger.debug("Setting workspace storage class to: %s", storage_class)

    return PipelineRun(
        generate_name=f"pr-{context.REPO_NAME}-{context.NUMBER}-{pipeline.name}",
        namespace=namespace,
        labels={
            f"{LABEL_PREFIX}/repo": context.REPO_NAME,
            f"{LABEL_PREFIX}/pr": context.NUMBER,
            f"{LABEL_PREFIX}/revision": context.GIT_REVISION,
            f"{LABEL_PREFIX}/triggered-by": label_safe_login(context.USER_LOGIN),
        },
        annotations={f"{LABEL_PREFIX}/url": context.URL},
        pipeline_name=pipeline.name,
        timeout=timeout,
        service_account_name=service_account.name,
        workspace_storage_class=storage_class,
        workspace_access_mode=access_mode,
        workspace_size=config.WORKSPACE_SIZE,
        image_pull_secrets=list(config.IMAGE_PULL_SECRETS),
        params={**params, **changed_file_params(changed_files)},
    )
