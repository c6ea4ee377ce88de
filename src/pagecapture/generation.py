"""Hand-off boundary to the external code generator."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable

from pagecapture.constants import EMPTY_SELECTION_MESSAGE
from pagecapture.flow import FlowOrderManager
from pagecapture.storage import append_log, write_json
from pagecapture.store import PageContextStore


@dataclass(frozen=True)
class GenerationOptions:
    feature_file: bool = True
    step_definitions: bool = False
    page_objects: bool = False

    def to_dict(self) -> dict[str, bool]:
        return {
            "includeFeatureFile": self.feature_file,
            "includeStepDefinitions": self.step_definitions,
            "includePageObjects": self.page_objects,
        }


@dataclass(frozen=True)
class GeneratedCode:
    gherkin: str = ""
    step_definitions: str = ""
    pom: str = ""

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "GeneratedCode":
        return cls(
            gherkin=str(payload.get("gherkin", "") or ""),
            step_definitions=str(payload.get("stepDefinitions", "") or ""),
            pom=str(payload.get("pom", "") or ""),
        )


Generator = Callable[[list[dict[str, Any]], GenerationOptions], Any]


def build_multi_page_context(store: PageContextStore, flow: FlowOrderManager) -> list[dict[str, Any]]:
    return [
        {"url": url, "elements": [item.to_dict() for item in store.elements_for(url)]}
        for url in flow.current_order()
    ]


def validate_generation_input(context: list[dict[str, Any]], options: GenerationOptions) -> None:
    if not context or not any(page.get("elements") for page in context):
        raise ValueError(EMPTY_SELECTION_MESSAGE)
    if not (options.feature_file or options.step_definitions or options.page_objects):
        raise ValueError("Select at least one output: feature file, step definitions or page objects.")


def generation_request_payload(
    store: PageContextStore,
    flow: FlowOrderManager,
    options: GenerationOptions,
) -> dict[str, Any]:
    context = build_multi_page_context(store, flow)
    validate_generation_input(context, options)
    return {"multiPageContext": context, **options.to_dict()}


def request_generation(
    store: PageContextStore,
    flow: FlowOrderManager,
    generator: Generator,
    options: GenerationOptions,
    *,
    log_path: Path | None = None,
) -> GeneratedCode:
    context = build_multi_page_context(store, flow)
    validate_generation_input(context, options)
    if log_path is not None:
        append_log(log_path, f"generation_request pages={len(context)} options={options.to_dict()}")
    result = generator(context, options)
    if isinstance(result, GeneratedCode):
        return result
    if isinstance(result, dict):
        return GeneratedCode.from_dict(result)
    raise TypeError("Code generator must return GeneratedCode or a dict")


def export_generation_request(
    path: Path,
    store: PageContextStore,
    flow: FlowOrderManager,
    options: GenerationOptions,
) -> dict[str, Any]:
    payload = generation_request_payload(store, flow, options)
    write_json(path, payload)
    return payload
