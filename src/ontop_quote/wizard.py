#!/usr/bin/env python3
"""
Quote Wizard
The three-step flow (form -> screenshots -> quote) as an explicit state machine.
Every transition replaces the immutable WizardState; nothing is patched in place.

    CollectingForm -> AwaitingScreenshots -> Ready

Each screenshot slot moves independently through
Empty -> Recognizing(0..100) -> Recognized | RecognitionFailed, and the quote is
only calculated once both slots have settled (a join, not a race).
"""

import asyncio
import itertools
import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional, Tuple, Union

from .calculator import QuoteCalculator
from .currency import CurrencyRateProvider
from .exceptions import (QuoteGeneratorError, RecognitionFailure, RenderFailure,
                         WizardStateError)
from .line_parser import ScreenshotParser
from .models import CurrencyRates, FormData, QuoteData
from .notifications import DEFAULT, DESTRUCTIVE, NotificationCenter
from .ocr import ImageSource, TesseractTextExtractor
from .renderer import QuoteDocumentRenderer

logger = logging.getLogger(__name__)

PAY = 'pay'
EMPLOYEE = 'employee'
SLOTS = (PAY, EMPLOYEE)


class Step(str, Enum):
    COLLECTING_FORM = 'collecting_form'
    AWAITING_SCREENSHOTS = 'awaiting_screenshots'
    READY = 'ready'


class SlotStatus(str, Enum):
    EMPTY = 'empty'
    RECOGNIZING = 'recognizing'
    RECOGNIZED = 'recognized'
    RECOGNITION_FAILED = 'recognition_failed'


@dataclass(frozen=True)
class SlotState:
    status: SlotStatus = SlotStatus.EMPTY
    progress: int = 0
    generation: int = 0
    text: str = ''
    error: Optional[str] = None

    @property
    def settled(self) -> bool:
        return self.status in (SlotStatus.RECOGNIZED, SlotStatus.RECOGNITION_FAILED)


@dataclass(frozen=True)
class WizardState:
    step: Step = Step.COLLECTING_FORM
    form: Optional[FormData] = None
    pay: SlotState = field(default_factory=SlotState)
    employee: SlotState = field(default_factory=SlotState)
    quote: Optional[QuoteData] = None
    error: Optional[str] = None
    # Slot generations the last analysis ran for; stops the join from firing twice
    analyzed: Optional[Tuple[int, int]] = None

    def slot(self, name: str) -> SlotState:
        if name not in SLOTS:
            raise ValueError(f"Unknown screenshot slot {name!r}, expected one of {SLOTS}")
        return getattr(self, name)


StateListener = Callable[[WizardState], None]


class QuoteWizard:
    """Drives one operator session from the form to the downloadable quote."""

    def __init__(self, extractor: Optional[TesseractTextExtractor] = None,
                 rate_provider: Optional[CurrencyRateProvider] = None,
                 calculator: Optional[QuoteCalculator] = None,
                 renderer: Optional[QuoteDocumentRenderer] = None,
                 notifications: Optional[NotificationCenter] = None,
                 parser: Optional[ScreenshotParser] = None):
        self.notifications = notifications or NotificationCenter()
        self.extractor = extractor or TesseractTextExtractor()
        self.rate_provider = rate_provider or CurrencyRateProvider(self.notifications)
        self.calculator = calculator or QuoteCalculator()
        self.renderer = renderer or QuoteDocumentRenderer()
        self.parser = parser or ScreenshotParser()
        self.rates: Optional[CurrencyRates] = None

        self._state = WizardState()
        self._listeners: List[StateListener] = []
        # Never restarts, so results from before a reset can't pass as current
        self._generations = itertools.count(1)

    @property
    def state(self) -> WizardState:
        return self._state

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _set_state(self, state: WizardState):
        self._state = state
        for listener in list(self._listeners):
            listener(state)

    def _transition(self, **changes):
        self._set_state(replace(self._state, **changes))

    def _update_slot(self, name: str, **changes):
        self._transition(**{name: replace(self._state.slot(name), **changes)})

    def _require(self, action: str, *steps: Step):
        if self._state.step not in steps:
            raise WizardStateError(self._state.step.value, action)

    def _fail(self, error: QuoteGeneratorError, title: str = "Processing Error"):
        logger.error(f"❌ {error}")
        self._transition(error=error.message)
        self.notifications.publish(DESTRUCTIVE, title, error.message)

    # Step 1

    def submit_form(self, form: FormData) -> WizardState:
        self._require("submit the form", Step.COLLECTING_FORM)
        if not form.country or not form.ae_name or not form.client_name:
            raise ValueError("country, sender and client name are required")

        self._transition(step=Step.AWAITING_SCREENSHOTS, form=form)
        logger.info(f"Form submitted for client '{form.client_name}' ({form.country})")
        return self._state

    # Step 2

    async def upload(self, slot: str, image: ImageSource) -> SlotState:
        """
        Recognize a screenshot for ``slot``. Re-uploading makes any in-flight
        recognition for the same slot stale: its result is dropped on arrival.
        """
        self._require("upload a screenshot", Step.AWAITING_SCREENSHOTS, Step.READY)
        self._state.slot(slot)

        generation = next(self._generations)
        self._transition(step=Step.AWAITING_SCREENSHOTS)
        self._update_slot(slot, status=SlotStatus.RECOGNIZING, progress=0,
                          generation=generation, text='', error=None)

        def is_current() -> bool:
            return self._state.slot(slot).generation == generation

        def on_progress(fraction: float):
            if is_current():
                self._update_slot(slot, progress=max(0, min(100, round(fraction * 100))))

        try:
            text = await self.extractor.recognize_async(image, on_progress, slot=slot)
            if not text or not text.strip():
                raise RecognitionFailure(slot, "no text extracted")
        except Exception as e:
            failure = e if isinstance(e, RecognitionFailure) else RecognitionFailure(slot, str(e))
            if not is_current():
                logger.debug(f"Discarding stale OCR failure for {slot} (generation {generation})")
                return self._state.slot(slot)
            self._update_slot(slot, status=SlotStatus.RECOGNITION_FAILED, progress=100, text='',
                              error=failure.message)
            self._fail(failure, title="Recognition Failed")
        else:
            if not is_current():
                logger.debug(f"Discarding stale OCR result for {slot} (generation {generation})")
                return self._state.slot(slot)
            self._update_slot(slot, status=SlotStatus.RECOGNIZED, progress=100, text=text)

        await self._join()
        return self._state.slot(slot)

    async def _join(self):
        pay, employee = self._state.pay, self._state.employee
        if not (pay.settled and employee.settled):
            return

        generations = (pay.generation, employee.generation)
        if self._state.analyzed == generations:
            return
        self._transition(analyzed=generations)

        if employee.status is SlotStatus.RECOGNITION_FAILED:
            # Already reported; wait for a new employee screenshot
            return

        try:
            await self._analyze(pay.text, employee.text, generations)
        except QuoteGeneratorError:
            logger.debug("Analysis failed, error kept in wizard state")

    async def analyze_texts(self, pay_text: str, employee_text: str) -> QuoteData:
        """
        Calculate the quote straight from recognized text.

        Raises:
            MissingRequiredField: If the pay text has no Gross Monthly Salary.
        """
        self._require("analyze screenshots", Step.AWAITING_SCREENSHOTS, Step.READY)
        self._update_slot(PAY, status=SlotStatus.RECOGNIZED, progress=100, text=pay_text)
        self._update_slot(EMPLOYEE, status=SlotStatus.RECOGNIZED, progress=100, text=employee_text)
        return await self._analyze(pay_text, employee_text)

    async def _analyze(self, pay_text: str, employee_text: str,
                       generations: Optional[Tuple[int, int]] = None) -> Optional[QuoteData]:
        form = self._state.form
        try:
            pay = self.parser.parse_pay_screenshot(pay_text)
            employee = self.parser.parse_employee_screenshot(employee_text)

            rates = await self.rate_provider.fetch_rates_async()

            quote = self.calculator.calculate(pay, employee, form, rates)
        except QuoteGeneratorError as e:
            self._fail(e)
            raise

        current = (self._state.pay.generation, self._state.employee.generation)
        if generations is not None and current != generations:
            logger.debug("Screenshots changed during analysis, discarding quote")
            return None

        self.rates = rates
        self._transition(step=Step.READY, quote=quote, error=None)
        self.notifications.publish(DEFAULT, "Success!", "Quote data extracted and calculated successfully.")
        return quote

    # Step 3

    async def download(self, output_dir: Union[str, Path] = '.', today=None) -> Path:
        """
        Render the current quote. On failure the quote stays as it is so the
        operator can simply retry.
        """
        self._require("download the quote", Step.READY)
        quote, form = self._state.quote, self._state.form

        loop = asyncio.get_running_loop()
        try:
            path = await loop.run_in_executor(
                None, lambda: self.renderer.render(quote, form, output_dir, today=today)
            )
        except RenderFailure as e:
            self._fail(e, title="PDF Generation Failed")
            raise

        self.notifications.publish(DEFAULT, "PDF Generated", "Your quote has been downloaded successfully.")
        return path

    # Anytime

    def dismiss_error(self):
        self._transition(error=None)

    def reset(self):
        self.rates = None
        self._set_state(WizardState())
        logger.info("Wizard reset")
