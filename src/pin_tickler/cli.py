import asyncio
import logging
from typing import Callable, Optional

import click
import requests
from playwright.async_api import async_playwright
from pydantic import ValidationError
from rich.console import Console

from pin_tickler.browser import ConsoleNotifier, PageAlertNotifier, PageFieldInteractor, PagePanel
from pin_tickler.config import RunConfig
from pin_tickler.interactor import SubmitMatcher
from pin_tickler.logs import configure_logging
from pin_tickler.session import Session
from pin_tickler.status_channel import StatusChannel
from pin_tickler.status_snapshot import StatusSnapshot, Termination
from pin_tickler.ui import ui_loop
from pin_tickler.utils import load_label_predicate

DEMO_BASE_URL = "http://127.0.0.1:8000"


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Log debug events")
@click.pass_context
def cli(ctx: click.Context, verbose: bool):
    ctx.ensure_object(dict)
    ctx.obj["log_level"] = logging.DEBUG if verbose else logging.INFO


def run_options(fn):
    """Options shared by commands that start a session."""
    options = [
        click.option("--min-value", type=int, help="Lowest value of the keyspace"),
        click.option("--max-value", type=int, help="Highest value of the keyspace"),
        click.option("--max-attempts", type=int, help="Attempt budget per run"),
        click.option("--interval-ms", type=int, help="Delay between attempts"),
        click.option("--settle-ms", type=int, help="Delay after each field write"),
        click.option("--pause-poll-ms", type=int, help="Poll interval while paused"),
        click.option("--selector", "field_selector", help="CSS selector of the target input"),
        click.option("--label", "labels", multiple=True, help="Submit control label (repeatable)"),
        click.option("--matcher", type=click.Path(exists=True, dir_okay=False), help="Python file defining match_submit_label(text, label)"),
        click.option("--start-running", is_flag=True, help="Start in RUNNING instead of PAUSED"),
        click.option("--auto-submit", is_flag=True, help="Enable auto-submit at start (cannot be undone)"),
        click.option("--headless", is_flag=True, help="Run the browser without a window"),
        click.option("--alert", is_flag=True, help="Notify with a page alert instead of the terminal"),
        click.option("--no-ui", is_flag=True, help="Plain log output instead of the live view"),
        click.option("--exit-on-finish", is_flag=True, help="Exit when the loop ends instead of waiting for the page to close"),
    ]
    for option in reversed(options):
        fn = option(fn)
    return fn


def build_config(start_running: bool, labels: tuple[str, ...], **overrides) -> RunConfig:
    """Build a RunConfig from CLI values, keeping defaults for options not given."""
    values = {k: v for k, v in overrides.items() if v is not None}
    if labels:
        values["submit_labels"] = labels
    values["start_paused"] = not start_running
    try:
        return RunConfig(**values)
    except ValidationError as e:
        raise click.UsageError(str(e))


async def run_session(
    url: str,
    config: RunConfig,
    *,
    predicate: Optional[Callable[[str, str], bool]] = None,
    auto_submit: bool = False,
    headless: bool = False,
    alert: bool = False,
    show_ui: bool = True,
    exit_on_finish: bool = False,
) -> Optional[Termination]:
    """Open url in Chromium, attach the control panel and drive a session until it ends."""
    console = Console()
    channel: StatusChannel[StatusSnapshot] = StatusChannel()

    async with async_playwright() as p:
        browser = await p.chromium.launch(headless=headless)
        page = await browser.new_page()
        await page.goto(url)

        matcher = SubmitMatcher(config.submit_labels, predicate)
        interactor = PageFieldInteractor(page, config.field_selector, matcher, settle_delay=config.settle_delay)
        notifier = PageAlertNotifier(page, headless=headless, console=console) if alert else ConsoleNotifier(console)
        session = Session(config, interactor, notifier=notifier)
        if auto_submit:
            session.enable_auto_submit()

        panel = PagePanel(page, session)
        session.add_channel(channel)
        session.add_sink(panel.update)
        await panel.attach()

        page_closed = asyncio.Event()
        page.on("close", lambda _: page_closed.set())
        ui_task = asyncio.create_task(ui_loop(channel, console)) if show_ui else None

        termination = None
        try:
            await session.start_loop()
            waiters = [asyncio.create_task(page_closed.wait())]
            if exit_on_finish:
                waiters.append(asyncio.create_task(session.wait()))
            done, pending = await asyncio.wait(waiters, return_when=asyncio.FIRST_COMPLETED)
            for task in pending:
                task.cancel()
            termination = session.loop.termination if session.loop else None
        finally:
            await session.close()
            channel.close()
            if ui_task is not None:
                await ui_task
            await browser.close()

        state = session.progress.state
        console.print(f"Session ended ({termination.value if termination else 'closed'}): cursor {state.cursor}/{state.total}")
        return termination


def start(ctx: click.Context, url: str, matcher: Optional[str], auto_submit: bool, headless: bool,
          alert: bool, no_ui: bool, exit_on_finish: bool, **config_values):
    configure_logging(ctx.obj["log_level"], ui=not no_ui)
    config = build_config(**config_values)
    predicate = load_label_predicate(matcher) if matcher else None
    try:
        asyncio.run(run_session(
            url,
            config,
            predicate=predicate,
            auto_submit=auto_submit,
            headless=headless,
            alert=alert,
            show_ui=not no_ui,
            exit_on_finish=exit_on_finish,
        ))
    except KeyboardInterrupt:
        click.echo("Interrupted.")


def fetch_demo_range(endpoint: str) -> tuple[int, int]:
    """Fetch the keyspace range advertised by the demo API."""
    response = requests.get(endpoint, timeout=10)
    if response.status_code != 200:
        raise ValueError(f"Failed to get {endpoint}: {response.status_code} {response.text}")
    data = response.json()
    return data["min_value"], data["max_value"]


@cli.command()
@click.argument("url")
@run_options
@click.pass_context
def run(ctx: click.Context, url: str, **kwargs):
    """Enumerate the keyspace against the input field on URL."""
    start(ctx, url, **kwargs)


@cli.command()
@click.option("--base-url", default=DEMO_BASE_URL, show_default=True, help="Where the demo API is served")
@run_options
@click.pass_context
def demo(ctx: click.Context, base_url: str, **kwargs):
    """Run against the local demo API (start it with `pin-tickler demo-api`)."""
    try:
        min_value, max_value = fetch_demo_range(f"{base_url}/api/range")
    except (requests.RequestException, ValueError) as e:
        raise click.ClickException(f"Demo API not reachable: {e}")
    if kwargs["min_value"] is None:
        kwargs["min_value"] = min_value
    if kwargs["max_value"] is None:
        kwargs["max_value"] = max_value
    start(ctx, f"{base_url}/", **kwargs)


@cli.command("demo-api")
@click.option("--host", default="127.0.0.1", help="Host to bind the server to")
@click.option("--port", default=8000, help="Port to bind the server to")
@click.option("--reload", is_flag=True, help="Enable auto-reload for development")
def demo_api(host: str, port: int, reload: bool):
    """Start the demo join page used as a local target."""
    try:
        import uvicorn
        from demo_api.api import app
    except ImportError as e:
        click.echo(f"Error: Demo API dependencies not available: {e}")
        click.echo("Install with: pip install 'pin-tickler[demo]'")
        raise click.Abort()

    click.echo(f"Starting demo API server on http://{host}:{port}")
    click.echo("Available endpoints:")
    click.echo("  - GET  /           - Join page with the gameId input")
    click.echo("  - GET  /api/range  - Keyspace range of the demo")
    click.echo("  - POST /api/join   - Check a game id")
    click.echo("  - GET  /api/stats  - Attempts seen so far")
    click.echo("\nPress Ctrl+C to stop the server")

    if reload:
        uvicorn.run("demo_api.api:app", host=host, port=port, reload=True)
    else:
        uvicorn.run(app, host=host, port=port, reload=False)


def main():
    cli(auto_envvar_prefix="PIN_TICKLER")


if __name__ == "__main__":
    main()
