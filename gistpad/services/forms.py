"""Form controller base: validate, submit once at a time, map failures to messages."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Callable

from pydantic import BaseModel

from gistpad.exceptions import DocumentStoreError, IdentityError, UniquenessError
from gistpad.services.error_messages import GENERIC_MESSAGE, UNIQUENESS_MESSAGES, FieldMessage, lookup
from gistpad.utils.validators import validate_form

logger = logging.getLogger(__name__)


class FormError(Exception):
    """Raised by ``perform`` for a failure that already has a user-facing message."""

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.message = message
        self.field = field


@dataclass
class FormState:
    values: dict = field(default_factory=dict)
    field_errors: dict[str, str] = field(default_factory=dict)
    general_error: str = ""
    success_message: str = ""
    is_submitting: bool = False


class FormController:
    """One form instance.

    ``submit()`` validates the current values against ``schema``, runs
    ``perform()`` and turns every failure into either a field error or a
    general error. A second ``submit()`` while one is in flight is ignored.
    After ``dispose()`` no state is written, including by an in-flight
    submission that completes later.
    """

    schema: type[BaseModel]
    messages: dict[str, FieldMessage] = {}
    default_message: str = GENERIC_MESSAGE
    success_message: str = ""
    success_ttl: float | None = None
    reset_on_success: bool = False

    def __init__(self, on_change: Callable[[FormState], None] | None = None):
        self._on_change = on_change
        self._disposed = False
        self._clear_handle: asyncio.TimerHandle | None = None
        self.state = FormState(values=self.initial_values())

    def initial_values(self) -> dict:
        return {name: info.default for name, info in self.schema.model_fields.items()}

    @property
    def disposed(self) -> bool:
        return self._disposed

    def set_value(self, name: str, value) -> None:
        if self._disposed:
            return
        self.state.values[name] = value
        self._changed()

    def validate(self) -> dict[str, str]:
        _, errors = validate_form(self.schema, self.state.values)
        return errors

    def reset(self) -> None:
        self.state.values = self.initial_values()
        self.state.field_errors = {}
        self.state.general_error = ""

    def dispose(self) -> None:
        self._disposed = True
        if self._clear_handle is not None:
            self._clear_handle.cancel()
            self._clear_handle = None

    async def submit(self, values: dict | None = None) -> bool:
        if self._disposed:
            return False
        if self.state.is_submitting:
            logger.debug("%s: submission already in flight", type(self).__name__)
            return False
        if values is not None:
            self.state.values.update(values)

        form, errors = validate_form(self.schema, self.state.values)
        self.state.field_errors = errors
        self.state.general_error = ""
        self.state.success_message = ""
        if form is None:
            self._changed()
            return False

        self.state.is_submitting = True
        self._changed()
        failure: FieldMessage | None = None
        try:
            await self.perform(form)
        except FormError as e:
            failure = (e.field, e.message)
        except UniquenessError as e:
            failure = (e.field, UNIQUENESS_MESSAGES.get(e.field, str(e)))
        except (IdentityError, DocumentStoreError) as e:
            logger.warning("%s failed: %s (%s)", type(self).__name__, e, e.code)
            failure = lookup(self.messages, e.code, self.default_message)
        except Exception:
            logger.exception("%s failed", type(self).__name__)
            failure = (None, self.default_message)
        finally:
            # Also on cancellation; a disposed form keeps its last state
            if not self._disposed:
                self.state.is_submitting = False

        if self._disposed:
            return failure is None

        if failure is not None:
            name, message = failure
            if name:
                self.state.field_errors[name] = message
            else:
                self.state.general_error = message
        else:
            self._succeeded()
        self._changed()
        return failure is None

    async def perform(self, form) -> None:
        raise NotImplementedError

    def _succeeded(self) -> None:
        if self.reset_on_success:
            self.reset()
        if self.success_message:
            self.state.success_message = self.success_message
            if self.success_ttl is not None:
                loop = asyncio.get_running_loop()
                if self._clear_handle is not None:
                    self._clear_handle.cancel()
                self._clear_handle = loop.call_later(self.success_ttl, self._clear_success)

    def _clear_success(self) -> None:
        self._clear_handle = None
        if self._disposed:
            return
        self.state.success_message = ""
        self._changed()

    def _changed(self) -> None:
        if self._on_change and not self._disposed:
            self._on_change(self.state)
