import ssl
from typing import Any

import aiohttp
from sanic.log import logger

from ci_trigger.config import Config
from ci_trigger.models import Pipeline, ServiceAccount

TEKTON_API = "apis/tekton.dev/v1"
CORE_API = "api/v1"


class Kubernetes:
    """Thin client for the parts of the cluster API the trigger run needs.

    Lookups return ``None`` when the object does not exist; every other
    HTTP failure is raised as :class:`aiohttp.ClientResponseError`.
    """

    def __init__(self, session: aiohttp.ClientSession, config: Config):
        self.session = session
        self.config = config
        self._headers = {"Authorization": f"Bearer {config.kube_token()}"}
        self._ssl: ssl.SSLContext | bool = True
        if config.KUBE_CA_PATH is not None:
            self._ssl = ssl.create_default_context(cafile=config.KUBE_CA_PATH)

    def get_url(self, api: str, namespace: str, resource: str, name: str = "") -> str:
        url = f"{self.config.KUBE_API_URL}/{api}/namespaces/{namespace}/{resource}"
        if name:
            url += f"/{name}"
        return url

    async def _get(self, url: str) -> dict[str, Any] | None:
        async with self.session.get(url, headers=self._headers, ssl=self._ssl) as resp:
            if resp.status == 404:
                logger.debug("Not found: %s", url)
                return None
            resp.raise_for_status()
            return await resp.json()

    async def get_pipeline(self, name: str, namespace: str) -> Pipeline | None:
        data = await self._get(self.get_url(TEKTON_API, namespace, "pipelines", name))
        if data is None:
            return None
        return Pipeline.model_validate(data)

    async def get_service_account(
        self, name: str, namespace: str
    ) -> ServiceAccount | None:
        data = await self._get(
            self.get_url(CORE_API, namespace, "serviceaccounts", name)
        )
        if data is None:
            return None
        return ServiceAccount.model_validate(data)

    async def create_pipeline_run(
        self, namespace: str, manifest: dict[str, Any]
    ) -> dict[str, Any] | None:
        if self.config.STERILE:
            logger.debug("Sterile mode: skipping PipelineRun creation")
            return None

        async with self.session.post(
            self.get_url(TEKTON_API, namespace, "pipelineruns"),
            json=manifest,
            headers=self._headers,
            ssl=self._ssl,
        ) as resp:
            resp.raise_for_status()
            return await resp.json()

    async def is_reachable(self) -> bool:
        async with self.session.get(
            f"{self.config.KUBE_API_URL}/version", headers=self._headers, ssl=self._ssl
        ) as resp:
            return resp.status == 200
