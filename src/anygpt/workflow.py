"""Text pipeline: read input, call the model, hand the result back."""

from __future__ import annotations

from dataclasses import dataclass
import logging

from anygpt.llm.client import LLMClient
from anygpt.llm.errors import LLMError
from anygpt.llm.types import GenerateResult
from anygpt.ports import ClipboardPort, CredentialNotFound, CredentialStore, NotificationPort
from anygpt.settings import SettingsStore

logger = logging.getLogger(__name__)

APP_TITLE = "AnyGPT"
SAMPLE_TEXT = "This is a sample text for testing AnyGPT functionality."
EMPTY_INPUT_MESSAGE = "Please select text first"


@dataclass(frozen=True)
class ProcessOutcome:
    input_chars: int
    result: GenerateResult | None = None
    error: LLMError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def output_text(self) -> str:
        if self.result is not None:
            return self.result.text
        return f"Error: {self.error.message}" if self.error is not None else ""


async def process_text(
    text: str,
    *,
    client: LLMClient,
    credentials: CredentialStore,
    settings: SettingsStore,
    clipboard: ClipboardPort,
    notifier: NotificationPort,
    is_test: bool = False,
) -> ProcessOutcome:
    """Send ``text`` through the model and write the reply (or the error) to the clipboard.

    Raises ``CredentialNotFound`` when no key is configured; every ``LLMError``
    is reported through the clipboard and notifier instead of propagating.
    """
    try:
        credential = credentials.get()
    except CredentialNotFound:
        logger.error("No API key found")
        notifier.show(APP_TITLE, "No API key found", is_error=True)
        raise

    prefs = settings.load()
    config = prefs.client_config()
    try:
        result = await client.generate(
            text,
            credential,
            model=prefs.model,
            system_prompt=prefs.system_prompt,
            config=config,
        )
    except LLMError as exc:
        logger.error("Error processing text: %s (%s)", exc, exc.kind.value)
        outcome = ProcessOutcome(input_chars=len(text), error=exc)
        clipboard.write_text(outcome.output_text)
        notifier.show(APP_TITLE, "Error copied to clipboard", is_error=True)
        return outcome

    if result.truncated:
        logger.warning("Input text was truncated to %d characters", config.max_input_length)
    if result.degraded:
        logger.warning("Response could not be parsed; raw body copied instead")

    clipboard.write_text(result.text)
    notifier.show(APP_TITLE, f"In: {len(text)} chars • Out: {len(result.text)} chars")
    if prefs.auto_paste and not is_test:
        clipboard.paste()
    logger.info("Successfully processed text: in=%d, out=%d", len(text), len(result.text))
    return ProcessOutcome(input_chars=len(text), result=result)


async def process_clipboard(
    *,
    client: LLMClient,
    credentials: CredentialStore,
    settings: SettingsStore,
    clipboard: ClipboardPort,
    notifier: NotificationPort,
) -> ProcessOutcome | None:
    text = clipboard.read_text()
    if text is None:
        notifier.show(APP_TITLE, "Nothing to process", is_error=True)
        clipboard.write_text(EMPTY_INPUT_MESSAGE)
        return None
    return await process_text(
        text,
        client=client,
        credentials=credentials,
        settings=settings,
        clipboard=clipboard,
        notifier=notifier,
    )
