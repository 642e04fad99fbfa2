"""CLI entry point for filecatalog commands."""

import argparse
import logging
import sys
from pathlib import Path

YES_NO_QUIT = ("y", "n", "q", "")


def _fail(message: str) -> None:
    print(f"ERROR: {message}", file=sys.stderr)
    sys.exit(1)


def _ask(prompt: str, hint: str) -> str:
    print(prompt)
    try:
        answer = input(f"{hint}-> ")
    except EOFError:
        return ""
    return answer.strip()


def _load_settings(args) -> dict:
    from filecatalog.settings import SettingsError, load_settings

    try:
        return load_settings(Path(args.config) if args.config else None)
    except (OSError, SettingsError) as e:
        _fail(str(e))


def _controller(settings: dict, catalogue_path: str):
    from filecatalog.session import SessionController

    return SessionController(
        Path(catalogue_path),
        algorithm=settings["hash_algorithm"],
        skip_names=settings["skip_names"],
    )


def _start(controller) -> None:
    from filecatalog.catalogue.store import CatalogueFormatError

    try:
        controller.start()
    except (OSError, CatalogueFormatError) as e:
        _fail(f"Cannot open catalogue {controller.catalogue_path}: {e}")


def cmd_session(args):
    """Interactive scan loop: scan paths, then commit or discard each scan."""
    from filecatalog.catalogue.store import CatalogueFormatError

    settings = _load_settings(args)
    default_catalogue = settings["catalogue_path"]

    print("File Catalog")
    print("---------------------")
    catalogue_path = _ask("Path to catalogue file", f"[{default_catalogue}]") or default_catalogue

    controller = _controller(settings, catalogue_path)
    _start(controller)

    quitting = False
    while not quitting:
        search_dir = _ask("Next path to scan (q to quit)", "")
        if not search_dir or search_dir.lower() == "q":
            break

        try:
            counters = controller.scan(Path(search_dir))
        except OSError as e:
            if controller.state is None:
                _fail(f"Scan aborted and {controller.catalogue_path} could not be reloaded: {e}")
            print(f"  Scan aborted: {e}")
            print("  Catalogue left unchanged.")
            continue
        except CatalogueFormatError as e:
            _fail(str(e))

        update = None
        while update not in YES_NO_QUIT:
            update = _ask(
                f"Job finished, {counters.duplicates} duplicates found, update catalogue?",
                "[y/N/q]",
            ).lower()

        try:
            if update == "y":
                controller.commit()
                print(f"  Saved {catalogue_path}")
            elif update == "q":
                print("Proceeding to exit...")
                quitting = True
            else:
                print("Discarding changes...")
                controller.discard()
        except (OSError, CatalogueFormatError) as e:
            _fail(str(e))

    try:
        controller.quit()
    except (OSError, CatalogueFormatError) as e:
        _fail(str(e))

    summary = _ask("Save text summary of duplicate files?", "[y/N]").lower()
    if summary == "y":
        report_path = Path(settings["report_path"])
        try:
            rows = controller.write_report(report_path)
        except OSError as e:
            _fail(f"Cannot write {report_path}: {e}")
        print(f"  Saved summary to: {report_path} ({rows} rows)")
    else:
        print("Exiting...")


def cmd_scan(args):
    """Non-interactive scan cycles, one per path."""
    from filecatalog.catalogue.store import CatalogueFormatError

    settings = _load_settings(args)
    controller = _controller(settings, args.catalogue or settings["catalogue_path"])
    _start(controller)

    print(f"SCAN — {len(args.path)} path(s) into {controller.catalogue_path}")
    for path in args.path:
        try:
            counters = controller.scan(Path(path))
        except OSError as e:
            _fail(f"Scan of {path} aborted: {e}")
        except CatalogueFormatError as e:
            _fail(str(e))

        print(f"  {path}: {counters.unique} new, {counters.duplicates} duplicates")
        try:
            if args.commit:
                controller.commit()
                print("    committed")
            else:
                controller.discard()
                print("    discarded (use --commit to save)")
        except (OSError, CatalogueFormatError) as e:
            _fail(str(e))

    controller.quit()


def cmd_report(args):
    """Write the duplicate report for the persisted catalogue."""
    from filecatalog.catalogue.report import write_duplicate_report
    from filecatalog.catalogue.store import CatalogueFormatError, load_catalogue

    settings = _load_settings(args)
    catalogue_path = Path(args.catalogue or settings["catalogue_path"])
    output = Path(args.output or settings["report_path"])

    try:
        catalogue = load_catalogue(catalogue_path)
    except (OSError, CatalogueFormatError) as e:
        _fail(f"Cannot load catalogue {catalogue_path}: {e}")

    try:
        rows = write_duplicate_report(catalogue, output)
    except OSError as e:
        _fail(f"Cannot write {output}: {e}")
    print(f"REPORT — {len(catalogue.duplicates())} duplicated fingerprints")
    print(f"  Wrote {output} ({rows} rows)")


def cmd_status(args):
    """Show catalogue statistics."""
    from filecatalog.catalogue.store import CatalogueFormatError, load_catalogue

    settings = _load_settings(args)
    catalogue_path = Path(args.catalogue or settings["catalogue_path"])
    if not catalogue_path.exists():
        print(f"  {catalogue_path}: not found")
        return

    try:
        catalogue = load_catalogue(catalogue_path)
    except (OSError, CatalogueFormatError) as e:
        _fail(f"Cannot load catalogue {catalogue_path}: {e}")

    duplicates = catalogue.duplicates()
    extra_copies = sum(len(locs) - 1 for locs in duplicates.values())
    print(f"  Catalogue: {catalogue_path}")
    print(f"  Fingerprints: {len(catalogue)}")
    print(f"  Files: {catalogue.total_files()}")
    print(f"  Duplicated fingerprints: {len(duplicates)}")
    print(f"  Extra copies: {extra_copies}")
    print(f"  Scanned roots: {len(catalogue.paths)}")
    for root in catalogue.paths:
        print(f"    - {root}")


def cmd_init_config(args):
    """Write a settings file populated with the defaults."""
    from filecatalog.settings import DEFAULTS, SETTINGS_PATH, save_settings

    output = Path(args.output or SETTINGS_PATH)
    if output.exists() and not args.force:
        _fail(f"{output} already exists (use --force to overwrite)")
    save_settings(DEFAULTS, output)
    print(f"  Wrote {output}")


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog="filecatalog",
        description="Catalogue files by content hash and report duplicates",
    )
    parser.add_argument("--config", help="Settings file (default: $FILECATALOG_CONFIG or filecatalog.yaml)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command")

    # session
    p_session = sub.add_parser("session", help="Interactive scan / commit / discard loop")
    p_session.set_defaults(func=cmd_session)

    # scan
    p_scan = sub.add_parser("scan", help="Scan directories without prompting")
    p_scan.add_argument("path", nargs="+", help="Directories to scan, one cycle each")
    p_scan.add_argument("--catalogue", help="Catalogue file (default from settings)")
    p_scan.add_argument(
        "--commit", action="store_true", help="Save each scan to the catalogue (default: discard)"
    )
    p_scan.set_defaults(func=cmd_scan)

    # report
    p_report = sub.add_parser("report", help="Write duplicate summary CSV")
    p_report.add_argument("--catalogue", help="Catalogue file (default from settings)")
    p_report.add_argument("--output", help="CSV path (default from settings)")
    p_report.set_defaults(func=cmd_report)

    # status
    p_status = sub.add_parser("status", help="Catalogue stats")
    p_status.add_argument("--catalogue", help="Catalogue file (default from settings)")
    p_status.set_defaults(func=cmd_status)

    # init-config
    p_init = sub.add_parser("init-config", help="Write a default settings file")
    p_init.add_argument("--output", help="Settings path (default: filecatalog.yaml)")
    p_init.add_argument("--force", action="store_true", help="Overwrite an existing file")
    p_init.set_defaults(func=cmd_init_config)

    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        sys.exit(1)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    args.func(args)
