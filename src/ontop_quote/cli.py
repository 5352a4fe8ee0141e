#!/usr/bin/env python3
"""
Ontop Quote Generator CLI
Terminal version of the quote wizard: form, screenshots, quote, PDF.
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Dict, Optional

from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, Progress, TaskID, TextColumn
from rich.prompt import Confirm, FloatPrompt, Prompt
from rich.table import Table

from .config import get_config
from .currency import get_local_currency
from .exceptions import QuoteGeneratorError
from .field_classifier import classify
from .formatters import format_amount, format_number
from .models import FormData, QuoteData
from .notifications import DESTRUCTIVE, Notification, NotificationCenter
from .wizard import EMPLOYEE, PAY, SLOTS, QuoteWizard, SlotStatus, Step, WizardState

logger = logging.getLogger(__name__)

console = Console()

SLOT_TITLES = {PAY: "Amount You Pay", EMPLOYEE: "Amount Employee Gets"}


def setup_logging(verbose: bool = False):
    logging.basicConfig(
        level=logging.DEBUG if verbose else getattr(logging, get_config("logging.level", "INFO")),
        format=get_config("logging.format", '%(asctime)s - %(name)s - %(levelname)s - %(message)s'),
    )


def setup_parser():
    """Set up command line argument parser."""
    parser = argparse.ArgumentParser(
        description="Ontop Quote Generator - branded quotes from payroll-quote screenshots",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  ontop-quote                                              # Start the interactive wizard
  ontop-quote quote --country Chile --client "Acme" --sender "Jane Doe" \\
      --pay pay.png --employee employee.png -o quotes/     # Screenshots to PDF
  ontop-quote quote --country Chile --client "Acme" --sender "Jane Doe" \\
      --pay-text pay.txt --employee-text employee.txt --json quote.json
        """
    )
    subparsers = parser.add_subparsers(dest='command')

    interactive = subparsers.add_parser('interactive', help='Start the interactive wizard (default)')
    interactive.add_argument('-o', '--output-dir', default='.', help='Where to save PDFs')
    interactive.add_argument('-v', '--verbose', action='store_true', help='Enable verbose logging')

    quote = subparsers.add_parser('quote', help='Generate a quote without prompts')
    quote.add_argument('--country', required=True, help='Employee country (name or ISO code)')
    quote.add_argument('--client', required=True, help='Client name')
    quote.add_argument('--sender', required=True, help='Quote sender (account executive)')
    quote.add_argument('--eor-fee', type=float, default=None, help='EOR fee in USD')
    quote.add_argument('--quote-currency', choices=['USD', 'Local'], default='USD')

    pay = quote.add_mutually_exclusive_group(required=True)
    pay.add_argument('--pay', help='"Amount You Pay" screenshot')
    pay.add_argument('--pay-text', help='Text file with already-recognized "Amount You Pay" text')
    employee = quote.add_mutually_exclusive_group(required=True)
    employee.add_argument('--employee', help='"Amount Employee Gets" screenshot')
    employee.add_argument('--employee-text', help='Text file with already-recognized "Amount Employee Gets" text')

    quote.add_argument('-o', '--output-dir', default='.', help='Where to save the PDF')
    quote.add_argument('--json', help='Also save the calculated quote as JSON')
    quote.add_argument('--debug', action='store_true', help='Show raw OCR text and parsed data')
    quote.add_argument('-v', '--verbose', action='store_true', help='Enable verbose logging')

    return parser


def show_notification(notification: Notification):
    style = "red" if notification.variant == DESTRUCTIVE else "green"
    console.print(Panel(notification.description, title=notification.title, border_style=style))


def print_quote(quote: QuoteData, form: FormData):
    """Show the three quote tables in the terminal."""
    console.print(f"\n[bold]Quote Summary[/bold]  [dim]Quote for {form.client_name} • Generated by {form.ae_name}[/dim]")

    sections = [
        ("Amount You Pay", quote.pay_fields, 'pay', "magenta", (quote.total_you_pay, quote.total_you_pay_usd)),
        ("Amount Employee Gets", quote.employee_fields, 'employee', "green", None),
        ("Setup Summary", quote.setup_summary, 'pay', "blue",
         (sum(f.local_amount for f in quote.setup_summary), sum(f.usd_amount for f in quote.setup_summary))),
    ]

    for title, fields, table_type, color, total in sections:
        table = Table(title=title, title_style=f"bold {color}", header_style="bold")
        table.add_column("Description")
        table.add_column(f"Local ({quote.local_currency})", justify="right")
        table.add_column("USD", justify="right")

        if not fields:
            console.print(Panel("No data available for this section", title=title, border_style=color))
            continue

        for field in fields:
            tags = classify(field.label, table_type)
            emphasized = tags.subtotal or (table_type == 'employee' and tags.net_salary)
            style = "bold" if emphasized or tags.gross_salary else None
            table.add_row(field.label, format_amount(field.local_amount), format_amount(field.usd_amount), style=style)

        if total is not None:
            table.add_section()
            table.add_row("Total", format_amount(total[0]), format_amount(total[1]), style="bold")

        console.print(table)

    if quote.exchange_rate != 1:
        console.print(
            f"[blue]Exchange Rate:[/blue] 1 {quote.local_currency} = {format_number(1 / quote.exchange_rate, 4)} USD "
            "[dim](indicative; contracts are always processed in local currency)[/dim]"
        )


def print_debug(state: WizardState):
    console.print(Panel(
        f"PAY TABLE:\n{state.pay.text}\n\nEMPLOYEE TABLE:\n{state.employee.text}",
        title="Raw OCR Text", border_style="yellow",
    ))
    if state.quote:
        console.print(Panel(json.dumps(state.quote.to_dict(), indent=2, ensure_ascii=False),
                            title="Parsed Data", border_style="yellow"))


async def upload_with_progress(wizard: QuoteWizard, images: Dict[str, str]):
    """Recognize the given screenshots concurrently with one progress bar per slot."""
    with Progress(TextColumn("[progress.description]{task.description}"), BarColumn(),
                  TextColumn("{task.percentage:>3.0f}%"), console=console) as progress:
        tasks: Dict[str, TaskID] = {
            slot: progress.add_task(f"Processing {SLOT_TITLES[slot]}...", total=100) for slot in images
        }

        def on_state(state: WizardState):
            for slot, task in tasks.items():
                progress.update(task, completed=state.slot(slot).progress)

        unsubscribe = wizard.subscribe(on_state)
        try:
            await asyncio.gather(*(wizard.upload(slot, path) for slot, path in images.items()))
        finally:
            unsubscribe()


def prompt_form() -> FormData:
    console.print("\n[bold]Step 1 · Quote Details[/bold]")
    country = Prompt.ask("Country")
    console.print(f"[dim]Local currency: {get_local_currency(country)}[/dim]")
    quote_currency = Prompt.ask("Quote currency", choices=["USD", "Local"], default="USD")
    ae_name = Prompt.ask("Quote sender")
    client_name = Prompt.ask("Client name")
    eor_fee = FloatPrompt.ask("EOR fee (USD)", default=float(get_config("quote.default_eor_fee_usd", 0)))
    return FormData(country=country, ae_name=ae_name, client_name=client_name,
                    quote_currency=quote_currency, eor_fee_usd=eor_fee)


def prompt_image(slot: str) -> str:
    while True:
        path = Prompt.ask(f"Path to the '{SLOT_TITLES[slot]}' screenshot").strip().strip('"\'')
        if Path(path).is_file():
            return path
        console.print(f"[red]❌ File not found: {path}[/red]")


async def interactive_mode(output_dir: str = '.'):
    """Interactive wizard with rich UI."""
    notifications = NotificationCenter()
    notifications.subscribe(show_notification)
    wizard = QuoteWizard(notifications=notifications)

    console.print(Panel.fit(
        "[bold magenta]Ontop Quote Generator[/bold magenta]\n"
        "[dim]Upload screenshots of payroll-quote tables to generate professional quotes[/dim]",
        border_style="magenta",
    ))

    while True:
        if wizard.state.step is Step.COLLECTING_FORM:
            try:
                wizard.submit_form(prompt_form())
            except ValueError as e:
                console.print(f"[red]❌ {e}[/red]")
            continue

        if wizard.state.step is Step.AWAITING_SCREENSHOTS:
            console.print("\n[bold]Step 2 · Upload Screenshots[/bold]")
            pending = [slot for slot in SLOTS if wizard.state.slot(slot).status is not SlotStatus.RECOGNIZED]
            if not pending or wizard.state.error:
                wizard.dismiss_error()
                choice = Prompt.ask("Re-upload which screenshot?", choices=["pay", "employee", "both"], default="both")
                pending = list(SLOTS) if choice == "both" else [choice]
            images = {slot: prompt_image(slot) for slot in pending}
            await upload_with_progress(wizard, images)
            continue

        print_quote(wizard.state.quote, wizard.state.form)
        console.print("\n[bold]Step 3 · Quote[/bold]")
        console.print("1. [cyan]Download PDF[/cyan]")
        console.print("2. [cyan]Show debug panel[/cyan]")
        console.print("3. [cyan]Reset[/cyan] - start a new quote")
        console.print("4. [cyan]Exit[/cyan]")
        choice = Prompt.ask("Select an option", choices=["1", "2", "3", "4"], default="1")

        if choice == "1":
            try:
                path = await wizard.download(output_dir)
                console.print(f"[green]💾 Quote saved to: {path}[/green]")
            except QuoteGeneratorError:
                # Already shown as a notification; the quote is kept for a retry
                pass
        elif choice == "2":
            print_debug(wizard.state)
        elif choice == "3":
            if Confirm.ask("Discard this quote and start over?", default=False):
                wizard.reset()
        else:
            console.print("[green]👋 Goodbye![/green]")
            return


def _read_text(path: Optional[str]) -> Optional[str]:
    return Path(path).read_text(encoding='utf-8') if path else None


async def generate_quote(args) -> Path:
    """Non-interactive run: form from flags, screenshots or text, PDF out."""
    notifications = NotificationCenter()
    notifications.subscribe(show_notification)
    wizard = QuoteWizard(notifications=notifications)

    form_kwargs = dict(country=args.country, ae_name=args.sender, client_name=args.client,
                       quote_currency=args.quote_currency)
    if args.eor_fee is not None:
        form_kwargs['eor_fee_usd'] = args.eor_fee
    wizard.submit_form(FormData(**form_kwargs))

    for image in (args.pay, args.employee):
        if image and not Path(image).is_file():
            raise FileNotFoundError(f"Screenshot not found: {image}")

    pay_text, employee_text = _read_text(args.pay_text), _read_text(args.employee_text)
    if pay_text is None and employee_text is None:
        await upload_with_progress(wizard, {PAY: args.pay, EMPLOYEE: args.employee})
    else:
        # Mixed input: recognize the screenshot side directly, then analyze both texts
        if pay_text is None:
            pay_text = await wizard.extractor.recognize_async(args.pay, slot=PAY)
        if employee_text is None:
            employee_text = await wizard.extractor.recognize_async(args.employee, slot=EMPLOYEE)
        await wizard.analyze_texts(pay_text, employee_text)

    if args.debug:
        print_debug(wizard.state)

    if wizard.state.step is not Step.READY:
        raise QuoteGeneratorError(wizard.state.error or "Quote could not be calculated")

    print_quote(wizard.state.quote, wizard.state.form)

    if args.json:
        with open(args.json, 'w', encoding='utf-8') as f:
            json.dump(wizard.state.quote.to_dict(), f, indent=2, ensure_ascii=False)
        logger.info(f"✅ Quote JSON saved to: {args.json}")

    return await wizard.download(args.output_dir)


def main():
    """Main CLI entry point."""
    parser = setup_parser()
    args = parser.parse_args()
    setup_logging(getattr(args, 'verbose', False))

    try:
        if args.command == 'quote':
            path = asyncio.run(generate_quote(args))
            console.print(f"[green]💾 Quote saved to: {path}[/green]")
        else:
            asyncio.run(interactive_mode(getattr(args, 'output_dir', '.')))
    except KeyboardInterrupt:
        console.print("\n[yellow]👋 Operation cancelled by user.[/yellow]")
        sys.exit(0)
    except (QuoteGeneratorError, FileNotFoundError, ValueError) as e:
        logger.error(f"❌ Quote generation failed: {e}")
        sys.exit(1)


if __name__ == '__main__':
    main()
