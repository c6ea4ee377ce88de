"""CLI entrypoint for pagecapture."""

from __future__ import annotations

import argparse
import json
from pathlib import Path

from pagecapture.config import CaptureConfig
from pagecapture.flow import FlowOrderManager
from pagecapture.generation import GenerationOptions, export_generation_request
from pagecapture.storage import LocalStorage, append_log, tail_lines
from pagecapture.store import PageContextStore


def main() -> None:
    parser = _build_parser()
    args = parser.parse_args()
    config = CaptureConfig.from_env()

    if args.command == "open":
        open_command(args.url, config)
        return
    if args.command == "pages":
        pages_command(config)
        return
    if args.command == "elements":
        elements_command(args.url, config, json_mode=args.json)
        return
    if args.command == "remove-page":
        remove_page_command(args.url, config)
        return
    if args.command == "remove-element":
        remove_element_command(args.url, args.index, config)
        return
    if args.command == "flow":
        flow_command(args.flow_action, args.url, config)
        return
    if args.command == "export":
        options = GenerationOptions(
            feature_file=not args.no_feature,
            step_definitions=args.steps,
            page_objects=args.pom,
        )
        export_command(Path(args.out), options, config)
        return
    if args.command == "logs":
        for line in tail_lines(config.log_path, args.tail):
            print(line)
        return

    parser.print_help()


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pagecapture",
        description="Capture element selectors from live pages across multi-page flows.",
    )
    subparsers = parser.add_subparsers(dest="command")

    open_parser = subparsers.add_parser("open", help="Open a page in a browser and capture elements")
    open_parser.add_argument("url", type=str)

    subparsers.add_parser("pages", help="List captured pages and their flow position")

    elements_parser = subparsers.add_parser("elements", help="Show elements captured on one page")
    elements_parser.add_argument("url", type=str)
    elements_parser.add_argument("--json", action="store_true", help="Print raw records as JSON.")

    remove_page_parser = subparsers.add_parser("remove-page", help="Drop a page and its captures")
    remove_page_parser.add_argument("url", type=str)

    remove_element_parser = subparsers.add_parser("remove-element", help="Drop one captured element")
    remove_element_parser.add_argument("url", type=str)
    remove_element_parser.add_argument("index", type=int, help="1-based position as shown by 'elements'.")

    flow_parser = subparsers.add_parser("flow", help="Show or edit the page navigation order")
    flow_parser.add_argument("flow_action", choices=("show", "toggle", "up", "down", "remove"))
    flow_parser.add_argument("url", type=str, nargs="?", default="")

    export_parser = subparsers.add_parser("export", help="Write the generator input for the current flow")
    export_parser.add_argument("--out", type=str, default="pagecapture_request.json")
    export_parser.add_argument("--no-feature", action="store_true", help="Do not request a feature file.")
    export_parser.add_argument("--steps", action="store_true", help="Request step definitions.")
    export_parser.add_argument("--pom", action="store_true", help="Request page objects.")

    logs_parser = subparsers.add_parser("logs", help="Tail the capture log")
    logs_parser.add_argument("--tail", type=int, default=200)
    return parser


def open_command(url: str, config: CaptureConfig) -> None:
    from pagecapture.web_live import run_live_capture

    _load_state(config)
    append_log(config.log_path, f"open url={url}")
    print(f"Press {config.toggle_key} in the page to start/stop inspecting, Escape to stop.")
    try:
        summary = run_live_capture(url, config)
    except (OSError, ValueError) as exc:
        raise SystemExit(f"Could not read capture storage {config.storage_path}: {exc}") from exc
    print(json.dumps(summary, indent=2, ensure_ascii=False))


def pages_command(config: CaptureConfig) -> None:
    store, flow, _ = _load_state(config)
    order = flow.current_order()
    if not store.pages_present():
        print("No pages captured yet.")
        return
    for url in store.pages_present():
        position = f"#{order.index(url) + 1}" if url in order else "-"
        print(f"{position:>4}  {len(store.elements_for(url)):>3}  {url}")


def elements_command(url: str, config: CaptureConfig, *, json_mode: bool) -> None:
    store, _, _ = _load_state(config)
    if url not in store:
        raise SystemExit(f"No elements captured for {url}")
    items = store.elements_for(url)
    if json_mode:
        print(json.dumps([item.to_dict() for item in items], indent=2, ensure_ascii=False))
        return
    for idx, item in enumerate(items, start=1):
        label = item.text[:40] or item.id or item.name or item.tag
        print(f"{idx:>3}. <{item.tag}> {label}")
        print(f"     xpath: {item.xpath}")
        print(f"     css:   {item.css_selector}")


def remove_page_command(url: str, config: CaptureConfig) -> None:
    store, flow, storage = _load_state(config)
    if not store.remove_page(url):
        raise SystemExit(f"No elements captured for {url}")
    _save_state(store, flow, storage)
    append_log(config.log_path, f"page_removed url={url}")
    print(f"Removed {url}")


def remove_element_command(url: str, index: int, config: CaptureConfig) -> None:
    store, flow, storage = _load_state(config)
    try:
        removed = store.remove_element(url, index - 1)
    except ValueError as exc:
        raise SystemExit(str(exc)) from exc
    _save_state(store, flow, storage)
    append_log(config.log_path, f"element_removed url={url} xpath={removed.xpath}")
    print(f"Removed <{removed.tag}> {removed.xpath}")


def flow_command(action: str, url: str, config: CaptureConfig) -> None:
    store, flow, storage = _load_state(config)
    if action != "show":
        if not url:
            raise SystemExit(f"flow {action} requires a page URL")
        if action == "toggle":
            try:
                flow.toggle(url)
            except ValueError as exc:
                raise SystemExit(str(exc)) from exc
        elif action == "up":
            flow.move_up(url)
        elif action == "down":
            flow.move_down(url)
        elif action == "remove":
            flow.remove(url)
        flow.save(storage)
        append_log(config.log_path, f"flow_{action} url={url} order={flow.current_order()}")
    labelled = flow.labelled_order()
    if not labelled:
        print("Flow is empty. Add pages with: pagecapture flow toggle <url>")
        return
    for label, page_url in labelled:
        print(f"{label}: {page_url}")


def export_command(out: Path, options: GenerationOptions, config: CaptureConfig) -> None:
    store, flow, _ = _load_state(config)
    try:
        payload = export_generation_request(out, store, flow, options)
    except ValueError as exc:
        raise SystemExit(str(exc)) from exc
    append_log(config.log_path, f"generation_export path={out} pages={len(payload['multiPageContext'])}")
    print(f"Wrote {out} ({len(payload['multiPageContext'])} pages)")


def _load_state(config: CaptureConfig) -> tuple[PageContextStore, FlowOrderManager, LocalStorage]:
    storage = LocalStorage(config.storage_path)
    store = PageContextStore(log_path=config.log_path)
    flow = FlowOrderManager(store)
    try:
        store.load(storage)
        flow.load(storage)
    except (OSError, ValueError) as exc:
        raise SystemExit(f"Could not read capture storage {config.storage_path}: {exc}") from exc
    return store, flow, storage


def _save_state(store: PageContextStore, flow: FlowOrderManager, storage: LocalStorage) -> None:
    store.save(storage)
    flow.save(storage)


if __name__ == "__main__":
    main()
