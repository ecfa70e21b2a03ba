"""
Command line entry point for VoxRefine.

Run with: python -m voxrefine transcribe memo.wav
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from . import __version__
from .audio import read_audio_file
from .config import Config
from .context import AppStyle, StaticAppInspector, StyleSelector
from .errors import Cancelled, ConfigError, STTError
from .history import HistoryRecorder
from .metrics import MetricsWriter
from .output import ClipboardSink, StdoutSink
from .pipeline import build_pipeline
from .providers import ProviderType
from .store import JsonFileStore
from .types import AppIdentity
from .vocabulary import EntryCategory, VocabularyManager


def configure_logging(debug: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    # requests/urllib3 are chatty at DEBUG
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def _cmd_transcribe(args: argparse.Namespace, config: Config) -> int:
    if args.provider:
        config.update(stt_provider=args.provider)
        if not args.model:
            config.update(stt_model=ProviderType.from_id(args.provider).default_model)
    if args.model:
        config.update(stt_model=args.model)
    if args.refine is not None:
        config.update(refinement_enabled=args.refine)

    inspector = None
    if args.app:
        inspector = StaticAppInspector(AppIdentity(bundle_id=args.app, name=args.app_name or args.app))

    metrics = MetricsWriter(config.metrics_file)
    pipeline = build_pipeline(config, inspector=inspector, metrics=metrics)
    try:
        result = pipeline.run(read_audio_file(args.file))
    finally:
        metrics.shutdown()

    StdoutSink().deliver(result.text)
    if args.copy:
        ClipboardSink().deliver(result.text)
    return 0


def _cmd_history(args: argparse.Namespace, config: Config) -> int:
    history = HistoryRecorder(
        JsonFileStore(config.history_file), max_entries=config.max_history_entries
    )

    if args.action == "list":
        for entry in history.recent(args.limit):
            app = entry.target_app_name or "-"
            print(f"{entry.timestamp:%Y-%m-%d %H:%M}  [{app}]  {entry.final_text}")
    elif args.action == "search":
        for entry in history.search(args.query):
            print(f"{entry.timestamp:%Y-%m-%d %H:%M}  {entry.final_text}")
    elif args.action == "stats":
        stats = history.statistics()
        print(f"Entries:         {stats.total_entries}")
        print(f"Refined:         {stats.refined_count} ({stats.refinement_rate:.0%})")
        print(f"Audio:           {stats.total_duration:.1f}s")
        print(f"Avg characters:  {stats.average_characters_per_entry:.1f}")
        for name, count in stats.top_apps:
            print(f"  {name}: {count}")
    elif args.action == "export":
        output = history.export_csv() if args.format == "csv" else history.export_json()
        sys.stdout.write(output)
    elif args.action == "clear":
        history.clear_all()
        print("History cleared")
    return 0


def _cmd_dictionary(args: argparse.Namespace, config: Config) -> int:
    vocabulary = VocabularyManager(JsonFileStore(config.dictionary_file))

    if args.action == "list":
        for entry in vocabulary.entries:
            print(f"{entry.id[:8]}  {entry.category.value:<10} {entry.prompt_term}")
    elif args.action == "add":
        entry = vocabulary.add_entry(args.term, args.pronunciation, EntryCategory.parse(args.category))
        if entry is None:
            print(f"Not added (blank or duplicate): {args.term}")
            return 1
        print(f"Added {entry.term}")
    elif args.action == "remove":
        matches = [e for e in vocabulary.entries if e.id.startswith(args.id)]
        if len(matches) != 1:
            print(f"No unique entry matches {args.id}", file=sys.stderr)
            return 1
        vocabulary.remove_entry(matches[0].id)
        print(f"Removed {matches[0].term}")
    elif args.action == "export":
        sys.stdout.write(vocabulary.export_json() + "\n")
    elif args.action == "import":
        added = vocabulary.import_json(Path(args.file).read_text(encoding="utf-8"), merge=not args.replace)
        print(f"Imported {added} entries")
    return 0


def _cmd_styles(args: argparse.Namespace, config: Config) -> int:
    styles = StyleSelector(JsonFileStore(config.app_styles_file), enabled=True)

    if args.action == "list":
        for app in styles.all_known_apps():
            marker = "*" if app.is_custom else " "
            print(f"{marker} {app.bundle_id:<40} {app.style.display_name}")
    elif args.action == "set":
        styles.set_style(AppStyle(args.style), args.bundle_id)
        print(f"{args.bundle_id} -> {args.style}")
    elif args.action == "reset":
        if not styles.remove_custom_style(args.bundle_id):
            print(f"No custom style for {args.bundle_id}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="voxrefine", description="Dictation transcription and refinement")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--data-dir", type=Path, help="Settings directory (default: ~/.voxrefine)")
    parser.add_argument("--debug", action="store_true", help="Verbose logging")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("transcribe", help="Transcribe an audio file")
    p.add_argument("file", type=Path)
    p.add_argument("--copy", action="store_true", help="Also copy the result to the clipboard")
    p.add_argument("--provider", help="STT provider id (e.g. siliconflow, openai)")
    p.add_argument("--model", help="STT model name")
    p.add_argument("--refine", dest="refine", action="store_true", default=None)
    p.add_argument("--no-refine", dest="refine", action="store_false")
    p.add_argument("--app", help="Bundle id of the target app, for styling")
    p.add_argument("--app-name", help="Display name of the target app")
    p.set_defaults(handler=_cmd_transcribe)

    p = sub.add_parser("history", help="Show or export dictation history")
    hist = p.add_subparsers(dest="action", required=True)
    h = hist.add_parser("list")
    h.add_argument("--limit", type=int, default=10)
    h = hist.add_parser("search")
    h.add_argument("query")
    hist.add_parser("stats")
    h = hist.add_parser("export")
    h.add_argument("--format", choices=["json", "csv"], default="json")
    hist.add_parser("clear")
    p.set_defaults(handler=_cmd_history)

    p = sub.add_parser("dictionary", help="Manage custom vocabulary")
    vocab = p.add_subparsers(dest="action", required=True)
    vocab.add_parser("list")
    v = vocab.add_parser("add")
    v.add_argument("term")
    v.add_argument("--pronunciation")
    v.add_argument("--category", default=EntryCategory.GENERAL.value,
                   choices=[c.value for c in EntryCategory], type=lambda s: EntryCategory.parse(s).value)
    v = vocab.add_parser("remove")
    v.add_argument("id", help="Entry id or unique prefix")
    vocab.add_parser("export")
    v = vocab.add_parser("import")
    v.add_argument("file", type=Path)
    v.add_argument("--replace", action="store_true", help="Replace instead of merging")
    p.set_defaults(handler=_cmd_dictionary)

    p = sub.add_parser("styles", help="Per-app refinement styles")
    styles = p.add_subparsers(dest="action", required=True)
    styles.add_parser("list")
    s = styles.add_parser("set")
    s.add_argument("bundle_id")
    s.add_argument("style", choices=[style.value for style in AppStyle])
    s = styles.add_parser("reset")
    s.add_argument("bundle_id")
    p.set_defaults(handler=_cmd_styles)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    try:
        config = Config.load(data_dir=args.data_dir)
    except ConfigError as e:
        print(f"voxrefine: {e}", file=sys.stderr)
        return 2

    configure_logging(args.debug or config.debug)

    try:
        return args.handler(args, config)
    except STTError as e:
        print(f"voxrefine: {e.message}", file=sys.stderr)
        return 1
    except ConfigError as e:
        print(f"voxrefine: {e}", file=sys.stderr)
        return 2
    except Cancelled:
        print("voxrefine: cancelled", file=sys.stderr)
        return 130
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
