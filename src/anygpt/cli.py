"""CLI entrypoint for anygpt."""

from __future__ import annotations

import asyncio
from contextlib import suppress
import json
from pathlib import Path
import signal
from typing import Optional

import typer

from anygpt import __version__
from anygpt.catalog import load_model_catalog
from anygpt.config import SETTING_TYPES, Settings
from anygpt.env import load_dotenv
from anygpt.llm.client import LLMClient, build_chat_request, create_client
from anygpt.llm.errors import LLMError
from anygpt.logs import clear_logs, configure_logging, log_path, recent_logs
from anygpt.ports import (
    ClipboardPort,
    ConsoleNotifier,
    CredentialNotFound,
    CredentialStore,
    EnvCredentialStore,
    StaticCredentialStore,
    StreamClipboard,
)
from anygpt.settings import SettingsStore
from anygpt.ui.progress import request_status
from anygpt.ui.render import (
    render_error,
    render_heading,
    render_hint,
    render_models,
    render_settings,
    render_success,
    render_validation,
    render_warning,
)
from anygpt.validation import load_and_validate_settings
from anygpt.workflow import SAMPLE_TEXT, ProcessOutcome, process_clipboard, process_text

app = typer.Typer(add_completion=False, help="Send text to a chat-completion model and get the reply back.")
key_app = typer.Typer(add_completion=False, help="API key helpers.")
config_app = typer.Typer(add_completion=False, help="Settings helpers and validation.")
llm_app = typer.Typer(add_completion=False, help="LLM utilities and diagnostics.")
logs_app = typer.Typer(add_completion=False, help="Inspect and clear the log file.")
app.add_typer(key_app, name="key")
app.add_typer(config_app, name="config")
app.add_typer(llm_app, name="llm")
app.add_typer(logs_app, name="logs")

MOCK_CREDENTIAL = "mock-key"


@app.callback(invoke_without_command=True)
def root(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Write debug records to the log file."),
) -> None:
    """anygpt: GPT anywhere, from the terminal."""
    load_dotenv()
    settings = SettingsStore().load()
    configure_logging(verbose=verbose or settings.verbose_logging)
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit(code=0)


@app.command("run")
def run(
    text: Optional[str] = typer.Argument(None, help="Text to process; read from stdin when omitted."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write the reply to a file."),
    model: Optional[str] = typer.Option(None, "--model", "-m", help="Override the configured model."),
    system_prompt: Optional[str] = typer.Option(None, "--system-prompt", "-s", help="Override the system prompt."),
    mock: bool = typer.Option(False, "--mock", help="Use the offline mock client."),
) -> None:
    """Process text through the model and print the reply."""
    settings = SettingsStore(overrides={"model": model, "system_prompt": system_prompt})
    clipboard = StreamClipboard(initial_text=text, output_path=output)
    outcome = _run_pipeline(settings=settings, clipboard=clipboard, mock=mock)
    if outcome is None or not outcome.ok:
        raise typer.Exit(code=1)


@app.command("sample")
def sample(mock: bool = typer.Option(False, "--mock", help="Use the offline mock client.")) -> None:
    """Send the built-in sample text to check that everything is wired up."""
    render_heading("sample run")
    settings = SettingsStore()
    outcome = _run_pipeline(settings=settings, clipboard=StreamClipboard(), mock=mock, sample_text=SAMPLE_TEXT)
    if outcome is None or not outcome.ok:
        raise typer.Exit(code=1)


@app.command("models")
def models() -> None:
    """List the curated model catalog."""
    items, warning = load_model_catalog()
    if warning:
        render_warning(warning)
    current = SettingsStore().load().model
    render_models([(item.slug, item.name, item.description, item.is_default) for item in items], current=current)
    if current not in {item.slug for item in items}:
        render_hint(f"Configured model '{current}' is not in the catalog.")


@key_app.command("status")
def key_status() -> None:
    """Show whether an API key is available."""
    try:
        credential = EnvCredentialStore().get()
    except CredentialNotFound as exc:
        render_warning(str(exc))
        raise typer.Exit(code=1) from exc
    render_success(f"API key found ({_mask(credential)}).")


@key_app.command("validate")
def key_validate(mock: bool = typer.Option(False, "--mock", help="Use the offline mock client.")) -> None:
    """Validate the API key with a minimal request."""
    credentials = _credentials(mock)
    try:
        credential = credentials.get()
    except CredentialNotFound as exc:
        render_error(str(exc))
        raise typer.Exit(code=2) from exc

    store = SettingsStore()
    client = _build_client(store, mock)

    async def _validate() -> bool:
        try:
            return await client.validate_credential(credential, config=store.client_config())
        finally:
            await client.aclose()

    try:
        with request_status("Validating API key"):
            asyncio.run(_validate())
    except LLMError as exc:
        render_error(f"API key validation failed. {exc.message}")
        raise typer.Exit(code=1) from exc
    render_success("API key is valid.")


@config_app.command("show")
def config_show() -> None:
    """Show the effective settings."""
    store = SettingsStore()
    render_settings(store.load().to_dict(), defaults=Settings().to_dict(), path=store.path)


@config_app.command("path")
def config_path() -> None:
    """Print the settings file path."""
    typer.echo(str(SettingsStore().path))


@config_app.command("set")
def config_set(key: str = typer.Argument(...), value: str = typer.Argument(...)) -> None:
    """Persist a single setting."""
    store = SettingsStore()
    if key not in SETTING_TYPES:
        render_error(f"Unknown setting '{key}'. Known settings: {', '.join(sorted(SETTING_TYPES))}")
        raise typer.Exit(code=1)
    try:
        stored = store.set(key, value)
    except ValueError as exc:
        render_error(str(exc))
        raise typer.Exit(code=1) from exc
    render_success(f"{key} = {stored!r}")


@config_app.command("reset")
def config_reset() -> None:
    """Restore every setting to its default."""
    store = SettingsStore()
    store.reset()
    render_success(f"Settings reset ({store.path}).")


@config_app.command("validate")
def config_validate(path: Optional[Path] = typer.Option(None, "--path", "-p")) -> None:
    """Validate a settings file."""
    result = load_and_validate_settings(path or SettingsStore().path)

    errors = [f"{issue.path}: {issue.message}" for issue in result.errors]
    warnings = [f"{issue.path}: {issue.message}" for issue in result.warnings]

    if errors:
        render_validation("INVALID", errors, style="notice.error")
        raise typer.Exit(code=1)

    if warnings:
        render_validation("VALID (with warnings)", warnings, style="notice.warn")
    else:
        render_validation("VALID", ["No issues found."], style="notice.ok")


@llm_app.command("dry-run")
def llm_dry_run(text: str = typer.Argument("Say hello in one sentence.")) -> None:
    """Build and display the request body without network access."""
    settings = SettingsStore().load()
    request, truncated = build_chat_request(
        text,
        model=settings.model,
        system_prompt=settings.system_prompt,
        config=settings.client_config(),
    )
    render_heading(f"POST {settings.base_url.rstrip('/')}/chat/completions")
    typer.echo(json.dumps(request.to_dict(), indent=2, sort_keys=True, ensure_ascii=False))
    if truncated:
        render_warning(f"Input truncated to {settings.client_config().max_input_length} characters.")


@logs_app.command("tail")
def logs_tail(lines: int = typer.Option(100, "--lines", "-n", min=1)) -> None:
    """Print the most recent log lines."""
    typer.echo(recent_logs(lines))


@logs_app.command("path")
def logs_path() -> None:
    """Print the log file path."""
    typer.echo(str(log_path()))


@logs_app.command("clear")
def logs_clear() -> None:
    """Delete the log file and its backups."""
    removed = clear_logs()
    render_success(f"Removed {removed} log file(s).")


@app.command("version")
def version() -> None:
    """Print the anygpt version."""
    typer.echo(__version__)


def _credentials(mock: bool) -> CredentialStore:
    if mock:
        return StaticCredentialStore(MOCK_CREDENTIAL)
    return EnvCredentialStore()


def _build_client(settings: SettingsStore, mock: bool) -> LLMClient:
    if mock:
        return create_client("mock")
    return create_client("openai", base_url=settings.load().base_url)


def _run_pipeline(
    *,
    settings: SettingsStore,
    clipboard: ClipboardPort,
    mock: bool,
    sample_text: str | None = None,
) -> ProcessOutcome | None:
    client = _build_client(settings, mock)
    notifier = ConsoleNotifier()
    credentials = _credentials(mock)

    async def _pipeline() -> ProcessOutcome | None:
        loop = asyncio.get_running_loop()
        with suppress(NotImplementedError, RuntimeError):
            loop.add_signal_handler(signal.SIGINT, client.cancel_in_flight)
        try:
            with request_status(f"Waiting for {settings.load().model}"):
                if sample_text is not None:
                    return await process_text(
                        sample_text,
                        client=client,
                        credentials=credentials,
                        settings=settings,
                        clipboard=clipboard,
                        notifier=notifier,
                        is_test=True,
                    )
                return await process_clipboard(
                    client=client,
                    credentials=credentials,
                    settings=settings,
                    clipboard=clipboard,
                    notifier=notifier,
                )
        finally:
            with suppress(NotImplementedError, RuntimeError):
                loop.remove_signal_handler(signal.SIGINT)
            await client.aclose()

    try:
        outcome = asyncio.run(_pipeline())
    except CredentialNotFound as exc:
        render_hint("Set OPENAI_API_KEY in the environment or a .env file, then run `anygpt key validate`.")
        raise typer.Exit(code=2) from exc

    if outcome is not None and outcome.result is not None:
        if outcome.result.truncated:
            render_warning("Input was truncated before sending.")
        if outcome.result.degraded:
            render_warning("The response could not be parsed; the raw body was returned.")
    return outcome


def _mask(credential: str) -> str:
    if len(credential) <= 8:
        return "*" * len(credential)
    return f"{credential[:3]}…{credential[-4:]}"


def main() -> None:
    app()


if __name__ == "__main__":
    main()
