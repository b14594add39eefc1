"""
Flat map of user-entered parameter values keyed by UI field name.

The store knows nothing about any particular model; it is cleared wholesale
when the selected model changes or the user resets the form.
"""
from __future__ import annotations

import logging
from collections.abc import MutableMapping
from typing import Any, Iterator, Optional

logger = logging.getLogger("parameter_store")


class ParameterStore(MutableMapping):
    def __init__(self, initial: Optional[dict[str, Any]] = None) -> None:
        self._values: dict[str, Any] = dict(initial or {})
        self.model_id: Optional[str] = None

    def __getitem__(self, key: str) -> Any:
        return self._values[key]

    def __setitem__(self, key: str, value: Any) -> None:
        self._values[key] = value

    def __delitem__(self, key: str) -> None:
        del self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"ParameterStore(model_id={self.model_id!r}, keys={list(self._values)!r})"

    def set_parameter(self, ui_field: str, value: Any) -> None:
        self._values[ui_field] = value

    def reset(self) -> None:
        self._values.clear()

    def select_model(self, model_id: str) -> None:
        """Switching models drops every value; re-selecting the same model keeps them."""
        if model_id != self.model_id:
            if self._values:
                logger.debug("parameter store cleared on model switch %s -> %s", self.model_id, model_id)
            self._values.clear()
            self.model_id = model_id

    def snapshot(self) -> dict[str, Any]:
        return dict(self._values)
