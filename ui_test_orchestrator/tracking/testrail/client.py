"""TestRail tracker implementation."""

import json
import logging
from collections.abc import AsyncGenerator, Mapping, Sequence
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any

import aiohttp

from ui_test_orchestrator.tracking.base import (
    CaseDefinition,
    RemoteServiceError,
    TestManagementClient,
)
from ui_test_orchestrator.tracking.testrail.config import TestRailConfig
from ui_test_orchestrator.tracking.testrail.models import (
    Case,
    CasesResponse,
    CaseStep,
    ResultResponse,
    RunResponse,
)

log = logging.getLogger(__name__)

STATUS_PASSED = 1
STATUS_FAILED = 5


def flatten_bdd(value: str | Sequence[CaseStep] | None) -> str:
    """Join a BDD field into newline separated text.

    Some templates store the step list as a JSON string, which is decoded
    like the list form.
    """
    if value is None:
        return ""
    if isinstance(value, str):
        text = value.strip()
        if not (text.startswith("[") and '{"content"' in text):
            return text
        try:
            value = [CaseStep.model_validate(item) for item in json.loads(text)]
        except (ValueError, TypeError):
            return text
    return "\n".join(step.content for step in value if step.content)


def case_definition(case: Case) -> CaseDefinition:
    bdd = next((text for f in case.bdd_fields() if (text := flatten_bdd(f))), "")
    return CaseDefinition(
        id=case.id,
        title=case.title,
        bdd=bdd,
        labels=tuple(label.title for label in case.labels),
    )


@dataclass(frozen=True, kw_only=True)
class TestRailClient(TestManagementClient):
    """TestRail v2 API client."""

    config: TestRailConfig
    session: aiohttp.ClientSession = field(repr=False)

    @classmethod
    @asynccontextmanager
    async def from_config(
        cls, config: TestRailConfig
    ) -> AsyncGenerator["TestRailClient", None]:
        """Create client with managed session lifecycle."""
        auth = aiohttp.BasicAuth(config.username, config.api_key.get_secret_value())
        async with aiohttp.ClientSession(
            base_url=config.api_base_url,
            auth=auth,
        ) as session:
            yield cls(config=config, session=session)

    def _url(self, endpoint: str, query: Mapping[str, Any] | None = None) -> str:
        url = f"{self.config.api_root}/{endpoint}"
        if query:
            separator = "&" if "?" in url else "?"
            url += separator + "&".join(f"{k}={v}" for k, v in query.items())
        return url

    async def _get(self, operation: str, url: str) -> Any:
        async with self.session.get(url) as response:
            if response.status != 200:
                text = await response.text()
                raise RemoteServiceError(operation, response.status, text)
            return await response.json()

    async def _post(
        self, operation: str, url: str, payload: Mapping[str, Any] | None = None
    ) -> Any:
        async with self.session.post(url, json=payload or {}) as response:
            if response.status != 200:
                text = await response.text()
                raise RemoteServiceError(operation, response.status, text)
            return await response.json()

    async def create_run(self, name: str, case_ids: Sequence[int]) -> int:
        payload = {
            "suite_id": self.config.suite_id,
            "name": name,
            "include_all": False,
            "case_ids": sorted(case_ids),
        }
        log.info(
            "Creating run: project_id=%s, suite_id=%s, name=%s, case_ids=%s",
            self.config.project_id,
            self.config.suite_id,
            name,
            payload["case_ids"],
        )
        data = await self._post(
            "add_run", self._url(f"add_run/{self.config.project_id}"), payload
        )
        run = RunResponse.model_validate(data)
        log.info("Created run %d", run.id)
        return run.id

    async def close_run(self, run_id: int) -> None:
        await self._post("close_run", self._url(f"close_run/{run_id}"))
        log.info("Closed run %d", run_id)

    async def get_case(self, case_id: int) -> CaseDefinition:
        data = await self._get("get_case", self._url(f"get_case/{case_id}"))
        return case_definition(Case.model_validate(data))

    async def get_cases_by_label(self, label: str) -> Sequence[int]:
        """Return ids of suite cases whose labels include ``label``.

        The API has no label filter, so the suite's cases are fetched and
        matched by title, ignoring case.
        """
        url = self._url(
            f"get_cases/{self.config.project_id}",
            {"suite_id": self.config.suite_id},
        )
        data = await self._get("get_cases", url)
        response = CasesResponse.from_payload(data)
        wanted = label.casefold()
        return [
            case.id
            for case in response.cases
            if any(lbl.title.casefold() == wanted for lbl in case.labels)
        ]

    async def submit_result(
        self,
        run_id: int,
        case_id: int,
        passed: bool,
        comment: str,
        defects: str | None = None,
    ) -> int:
        payload: dict[str, Any] = {
            "status_id": STATUS_PASSED if passed else STATUS_FAILED,
            "comment": comment,
        }
        if defects:
            payload["defects"] = defects
        data = await self._post(
            "add_result_for_case",
            self._url(f"add_result_for_case/{run_id}/{case_id}"),
            payload,
        )
        result = ResultResponse.model_validate(data)
        log.info(
            "Submitted %s result %d for case %d in run %d",
            "passing" if passed else "failing",
            result.id,
            case_id,
            run_id,
        )
        return result.id

    async def upload_attachment(
        self, result_id: int, filename: str, data: bytes, media_type: str
    ) -> None:
        form = aiohttp.FormData()
        form.add_field("attachment", data, filename=filename, content_type=media_type)
        url = self._url(f"add_attachment_to_result/{result_id}")
        async with self.session.post(url, data=form) as response:
            if response.status != 200:
                text = await response.text()
                raise RemoteServiceError(
                    "add_attachment_to_result", response.status, text
                )
        log.info("Uploaded %s (%d bytes) to result %d", filename, len(data), result_id)
