"""
Combo widget models for node inputs, static or backed by a remote option source.
"""
import logging
from concurrent.futures import Future
from typing import Any, List, Optional, Union

from remote_options.accessor import ComboOptions, DeferredOptions
from remote_options.fetcher import RemoteOptionFetcher
from remote_options.schemas import ComboInputSpec, parse_combo_input

logger = logging.getLogger("remote_options.widgets")


class ComboWidget:
    """A combo field. An unset value falls back to the first available option."""

    def __init__(
        self,
        name: str,
        options: Union[ComboOptions, DeferredOptions],
        value: Optional[Any] = None,
    ):
        self.name = name
        self.options = options
        self._value = value

    @property
    def value(self) -> Optional[Any]:
        if self._value is not None:
            return self._value
        values = self.options.values
        return values[0] if values else None

    @value.setter
    def value(self, new_value: Optional[Any]) -> None:
        self._value = new_value

    @property
    def is_remote(self) -> bool:
        return False

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, value={self._value!r})"


class RemoteComboWidget(ComboWidget):
    """Combo field whose options come from a remote route."""

    options: DeferredOptions

    def __init__(self, name: str, options: DeferredOptions, value: Optional[Any] = None):
        super().__init__(name, options, value)

    @property
    def is_remote(self) -> bool:
        return True

    @property
    def has_refresh_button(self) -> bool:
        return self.options.option_spec.refresh_button

    def refresh(self) -> Future:
        """
        Drop cached options and fetch them again.

        When the fetch resolves, control_after_refresh ("first" / "last")
        selects the corresponding option.

        Returns:
            Future resolving to the new options once the value has been updated
        """
        self.options.force_update()
        self.options.values  # read starts the fetch
        refreshed: Future = Future()

        def on_fetched(fetch: Future) -> None:
            options = fetch.result()
            try:
                self._apply_control_after_refresh(options)
            finally:
                refreshed.set_result(options)

        self.options.last_fetch.add_done_callback(on_fetched)
        return refreshed

    def _apply_control_after_refresh(self, options: Optional[List[Any]]) -> None:
        mode = self.options.option_spec.control_after_refresh
        if mode is None or not options:
            return
        self.value = options[0] if mode == "first" else options[-1]
        logger.debug(f"Combo '{self.name}' set to {self.value!r} after refresh")


def create_combo_widget(
    input_spec: ComboInputSpec,
    fetcher: Optional[RemoteOptionFetcher] = None,
) -> ComboWidget:
    """
    Build the widget for a parsed combo input.

    Raises:
        ValueError: If the input is remote and no fetcher is given
    """
    if not input_spec.is_remote:
        return ComboWidget(
            input_spec.name,
            ComboOptions(values=list(input_spec.options)),
            value=input_spec.default,
        )

    if fetcher is None:
        raise ValueError(f"Remote combo '{input_spec.name}' needs a fetcher")

    options = DeferredOptions(ComboOptions(), input_spec.remote, fetcher)
    return RemoteComboWidget(input_spec.name, options, value=input_spec.default)


def widget_from_definition(
    name: str,
    definition: List[Any],
    fetcher: Optional[RemoteOptionFetcher] = None,
) -> ComboWidget:
    """Parse a node input definition and build its widget."""
    return create_combo_widget(parse_combo_input(name, definition), fetcher)
