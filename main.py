import argparse
import json
import sys

from rich.console import Console
from rich.markup import escape

from clipsync.config import load_settings
from clipsync.errors import ClipSyncError
from clipsync.log_utils import setup_logging
from clipsync.orchestrator import Orchestrator, console, print_preview_report, print_sync_report


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="main.py",
        description="Reconcile a folder of video clips with the clip catalog.",
    )
    parser.add_argument("--json", action="store_true", help="Print the report as JSON.")
    parser.add_argument("--env-file", help="Load settings from this .env file.")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("sync", help="Add new files to the catalog and remove clips whose files are gone.")
    p.add_argument("root", nargs="?", help="Root folder (defaults to the configured one).")

    p = sub.add_parser("preview", help="Show what sync would change, without changing anything.")
    p.add_argument("root", nargs="?", help="Root folder (defaults to the configured one).")

    p = sub.add_parser("apply", help="Apply selected additions and removals.")
    p.add_argument("root", nargs="?", help="Root folder (defaults to the configured one).")
    p.add_argument("--add", nargs="+", default=[], metavar="PATH", help="Video files to catalog.")
    p.add_argument("--remove", nargs="+", type=int, default=[], metavar="ID", help="Clip ids to delete.")

    p = sub.add_parser("set-root", help="Save the default root folder in the catalog.")
    p.add_argument("root")

    sub.add_parser("show-root", help="Print the configured root folder.")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    settings = load_settings(args.env_file)
    setup_logging(settings.log_level, console=Console(stderr=True))

    try:
        app = Orchestrator(settings, show_progress=not args.json)

        if args.command == "sync":
            report = app.sync(args.root)
        elif args.command == "preview":
            report = app.preview(args.root)
        elif args.command == "apply":
            if not args.add and not args.remove:
                console.print("[yellow]Nothing to apply: pass --add and/or --remove.[/yellow]")
                return 2
            report = app.selective_sync(args.root, args.add, args.remove)
        elif args.command == "set-root":
            console.print(f"Root folder set to [bold]{escape(app.set_root(args.root))}[/bold]")
            return 0
        else:
            root = app.show_root()
            console.print(escape(root) if root else "[yellow]No root folder configured.[/yellow]")
            return 0
    except ClipSyncError as e:
        console.print(f"[bold red]Error:[/bold red] {escape(str(e))}")
        return 1

    if args.json:
        print(json.dumps(report.to_dict(), indent=2))
    elif args.command == "preview":
        print_preview_report(report)
    else:
        print_sync_report(report)
    return 0


if __name__ == "__main__":
    sys.exit(main())
