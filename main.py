#!/usr/bin/env python3
"""
Invoice Composer - Main Entry Point.

Command-line front end over the invoice composer library. Invoices are
exchanged as JSON drafts (the same format the draft export writes), the
company profile and templates live in the local SQLite store.

Usage:
    Command Line:
        python main.py new invoice.json
        python main.py totals invoice.json
        python main.py export invoice.json --format pdf --output ./outputs/
        python main.py logo invoice.json logo.png
        python main.py profile save invoice.json
        python main.py template list

    Python:
        from main import run_export
        notifications = run_export("invoice.json", ["pdf", "html"])

Author: Invoice Composer Team
Version: 1.0.0
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

# Add project root to path for imports
PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

# Import project modules
from config import ConfigurationManager
from invoice_composer.utils.logger import LOGGER_NAMESPACE, get_logger, setup_logger_from_config
from invoice_composer.utils.exceptions import InvoiceComposerError

EXPORT_FORMATS = {
    'pdf': ['pdf'],
    'html': ['html'],
    'json': ['draft'],
    'all': ['pdf', 'html', 'draft'],
}


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Returns:
        Parsed argument namespace.
    """
    parser = argparse.ArgumentParser(
        description="Invoice Composer - compose, store and export invoices",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    Start a new draft:
        python main.py new invoice.json

    Export every format:
        python main.py export invoice.json --format all --output ./outputs/

    Reuse a template:
        python main.py template save invoice.json --name "Monthly retainer"
        python main.py template load <template-id> invoice.json
        """
    )

    parser.add_argument(
        "--config", "-c",
        type=str,
        default=None,
        help="Path to custom configuration file"
    )

    parser.add_argument(
        "--db",
        type=str,
        default=None,
        help="SQLite database for the profile and templates (default: from config)"
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging"
    )

    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Only log warnings and errors"
    )

    commands = parser.add_subparsers(dest="command", required=True)

    new = commands.add_parser("new", help="Write the default sample invoice as a draft")
    new.add_argument("draft", help="Draft file to create")
    new.add_argument("--with-profile", action="store_true", help="Merge the stored company profile")

    totals = commands.add_parser("totals", help="Print the financial summary of a draft")
    totals.add_argument("draft", help="Invoice draft (JSON)")

    export = commands.add_parser("export", help="Export a draft")
    export.add_argument("draft", help="Invoice draft (JSON)")
    export.add_argument("--format", "-f", choices=sorted(EXPORT_FORMATS), default="pdf", help="Artifact format")
    export.add_argument("--output", "-o", default=None, help="Output directory (default: from config)")
    export.add_argument("--email", action="store_true", help="Also print a mailto: link for the client")

    logo = commands.add_parser("logo", help="Validate, optimize and embed a company logo")
    logo.add_argument("draft", help="Invoice draft (JSON), updated in place")
    logo.add_argument("image", help="Logo image file (PNG, JPG or SVG)")

    profile = commands.add_parser("profile", help="Save or apply the company profile")
    profile.add_argument("action", choices=["save", "load", "clear"])
    profile.add_argument("draft", nargs="?", help="Invoice draft (JSON)")

    template = commands.add_parser("template", help="Manage invoice templates")
    template_actions = template.add_subparsers(dest="action", required=True)

    template_actions.add_parser("list", help="List stored templates")

    save = template_actions.add_parser("save", help="Store a draft as a template")
    save.add_argument("draft", help="Invoice draft (JSON)")
    save.add_argument("--name", required=True, help="Template name")
    save.add_argument("--description", default="", help="Template description")

    load = template_actions.add_parser("load", help="Apply a template to a draft")
    load.add_argument("template_id", help="Template id")
    load.add_argument("draft", help="Invoice draft (JSON), created or updated in place")

    delete = template_actions.add_parser("delete", help="Delete a template")
    delete.add_argument("template_id", help="Template id")

    return parser.parse_args(argv)


def initialize_system(args: argparse.Namespace) -> ConfigurationManager:
    """
    Initialize configuration and logging.

    Args:
        args: Parsed command-line arguments.

    Returns:
        Initialized configuration manager.
    """
    if args.config:
        ConfigurationManager.reset()
    config = ConfigurationManager(args.config)

    logger = setup_logger_from_config()

    if args.debug:
        logging.getLogger(LOGGER_NAMESPACE).setLevel(logging.DEBUG)
    elif args.quiet:
        logging.getLogger(LOGGER_NAMESPACE).setLevel(logging.WARNING)

    logger.debug("=" * 60)
    logger.debug(f"INVOICE COMPOSER v{config.get('project.version', '1.0.0')}")
    logger.debug("=" * 60)

    return config


def _local_store(args: argparse.Namespace):
    from invoice_composer.storage import SQLiteStore
    return SQLiteStore(args.db) if args.db else SQLiteStore()


def _write_draft(data, path: Path) -> None:
    from invoice_composer.export import DraftExporter
    result = DraftExporter().export(data)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(result.content)


def run_export(
    draft_path: str,
    kinds: List[str],
    output_dir: Optional[str] = None
) -> list:
    """
    Export a draft in one or more formats.

    This is the programmatic entry point: it renders the invoice surface
    once and runs each export through the ExportHandler.

    Args:
        draft_path: Invoice draft (JSON).
        kinds: Export kinds (pdf, html, print, draft).
        output_dir: Destination directory.

    Returns:
        List of Notification objects, one per export.

    Example:
        >>> for n in run_export("invoice.json", ["pdf", "draft"], "outputs"):
        ...     print(n.title, n.path)
    """
    from config import get_config
    from invoice_composer.export import ExportHandler
    from invoice_composer.export.draft_exporter import load_draft
    from invoice_composer.rendering import InvoicePreviewRenderer

    logger = get_logger(__name__)

    data = load_draft(draft_path)
    document, surface = InvoicePreviewRenderer().render_document(data)
    handler = ExportHandler(output_dir=output_dir or get_config("paths.output_dir", "outputs"))

    notifications = []
    for kind in kinds:
        notification = handler.run(kind, data, document, surface)
        if notification.success:
            logger.info(f"{notification.description} -> {notification.path}")
        else:
            logger.error(f"{notification.title}: {notification.description}")
        notifications.append(notification)
    return notifications


def command_new(args: argparse.Namespace) -> int:
    from invoice_composer.models import InvoiceData, merge_company_profile
    from invoice_composer.storage import CompanyProfileStore

    data = InvoiceData.default()
    if args.with_profile:
        profile = CompanyProfileStore(_local_store(args)).load()
        if profile is not None:
            data = merge_company_profile(data, profile)
    _write_draft(data, Path(args.draft))
    print(f"Created {args.draft}")
    return 0


def command_totals(args: argparse.Namespace) -> int:
    from invoice_composer.calculation import calculate_totals, format_currency
    from invoice_composer.export.draft_exporter import load_draft

    data = load_draft(args.draft)
    totals = calculate_totals(data)

    print(f"Invoice {data.invoice_number} ({data.status.value})")
    print(f"  Subtotal: {format_currency(totals.subtotal, data.currency)}")
    if totals.discount_amount:
        print(f"  Discount: -{format_currency(totals.discount_amount, data.currency)}")
    print(f"  Tax ({data.tax_rate:g}%): {format_currency(totals.tax, data.currency)}")
    print(f"  Total: {format_currency(totals.total, data.currency)}")
    return 0


def command_export(args: argparse.Namespace) -> int:
    notifications = run_export(args.draft, EXPORT_FORMATS[args.format], args.output)
    for notification in notifications:
        target = notification.path or notification.description
        print(f"[{notification.kind.label}] {notification.title}: {target}")

    if args.email:
        from invoice_composer.export import build_mailto_link
        from invoice_composer.export.draft_exporter import load_draft
        print(build_mailto_link(load_draft(args.draft)))

    return 0 if all(n.success for n in notifications) else 1


def command_logo(args: argparse.Namespace) -> int:
    from invoice_composer.export.draft_exporter import load_draft
    from invoice_composer.imaging import LogoUploader, UploadedFile

    data = load_draft(args.draft)
    result = LogoUploader().upload(UploadedFile.from_path(args.image))
    print(f"{result.title}: {result.description}")
    if not result.success:
        return 1

    _write_draft(data.with_field("company_logo", result.data_uri), Path(args.draft))
    return 0


def command_profile(args: argparse.Namespace) -> int:
    from invoice_composer.export.draft_exporter import load_draft
    from invoice_composer.models import CompanyProfile, merge_company_profile
    from invoice_composer.storage import CompanyProfileStore

    profiles = CompanyProfileStore(_local_store(args))

    if args.action == "clear":
        return 0 if profiles.clear() else 1

    if not args.draft:
        raise ValueError(f"profile {args.action} requires a draft file")

    if args.action == "save":
        saved = profiles.save(CompanyProfile.from_invoice(load_draft(args.draft)))
        print("Company Profile Saved" if saved else "Save Failed")
        return 0 if saved else 1

    profile = profiles.load()
    if profile is None:
        print("No company profile stored")
        return 1
    _write_draft(merge_company_profile(load_draft(args.draft), profile), Path(args.draft))
    print(f"Applied company profile to {args.draft}")
    return 0


def command_template(args: argparse.Namespace) -> int:
    from invoice_composer.export.draft_exporter import load_draft
    from invoice_composer.models import InvoiceData, InvoiceTemplate, apply_template
    from invoice_composer.storage import TemplateStore

    templates = TemplateStore(_local_store(args))

    if args.action == "list":
        stored = templates.load_all()
        if not stored:
            print("No templates stored")
        for template in stored:
            print(f"{template.id}  {template.name}  (updated {template.updated_at})")
        return 0

    if args.action == "save":
        template = InvoiceTemplate.create(args.name, args.description, data=load_draft(args.draft).to_dict())
        if not templates.save(template):
            return 1
        print(f"Saved template {template.id}")
        return 0

    if args.action == "delete":
        return 0 if templates.delete(args.template_id) else 1

    template = templates.get(args.template_id)
    if template is None:
        print(f"Template not found: {args.template_id}")
        return 1
    draft = Path(args.draft)
    base = load_draft(draft) if draft.exists() else InvoiceData.default()
    _write_draft(apply_template(base, template), draft)
    print(f"Applied template '{template.name}' to {draft}")
    return 0


COMMANDS = {
    "new": command_new,
    "totals": command_totals,
    "export": command_export,
    "logo": command_logo,
    "profile": command_profile,
    "template": command_template,
}


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main function - entry point for command-line execution.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    try:
        args = parse_arguments(argv)
        initialize_system(args)
        return COMMANDS[args.command](args)

    except InvoiceComposerError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    except KeyboardInterrupt:
        print("\nOperation cancelled by user")
        return 130

    except Exception as e:
        print(f"Unexpected error: {e}", file=sys.stderr)
        if "--debug" in sys.argv:
            import traceback
            traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
