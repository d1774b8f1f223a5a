from threading import Lock
from typing import Any, Callable, Mapping, Optional

from kitbase_flags.impl.changes import ChangedFlags
from kitbase_flags.impl.listeners import Listeners
from kitbase_flags.impl.util import same_json_value
from kitbase_flags.interfaces import FlagChange, FlagTracker, FlagValueChange


class FlagKeyListener:
    def __init__(self, key: str, listener: Callable[[FlagChange], None]):
        self.__key = key
        self.__listener = listener

    def __call__(self, flag_change: FlagChange):
        if flag_change.key == self.__key:
            self.__listener(flag_change)


class FlagValueChangeListener:
    def __init__(self, key: str, context: Optional[Mapping[str, Any]], listener: Callable[[FlagValueChange], None], eval_fn: Callable):
        self.__key = key
        self.__context = context
        self.__listener = listener
        self.__eval_fn = eval_fn

        self.__lock = Lock()
        self.__value = eval_fn(key, context)

    def __call__(self, flag_change: FlagChange):
        if flag_change.key != self.__key:
            return

        new_value = self.__eval_fn(self.__key, self.__context)

        with self.__lock:
            old_value, self.__value = self.__value, new_value

        if same_json_value(new_value, old_value):
            return

        self.__listener(FlagValueChange(self.__key, old_value, new_value))


class FlagTrackerImpl(FlagTracker):
    """
    Fans each set of changed flag keys published on ``changed_flags_listeners`` out to per-key
    :class:`FlagChange` listeners.
    """

    def __init__(self, changed_flags_listeners: Listeners, eval_fn: Callable):
        self.__listeners = Listeners()
        self.__eval_fn = eval_fn
        changed_flags_listeners.add(self._on_changed_flags)

    def _on_changed_flags(self, changed: ChangedFlags):
        if not self.__listeners.has_listeners():
            return
        for key in sorted(changed):
            self.__listeners.notify(FlagChange(key))

    def add_listener(self, listener: Callable[[FlagChange], None]) -> Callable[[], None]:
        return self.__listeners.add(listener)

    def add_key_listener(self, key: str, listener: Callable[[FlagChange], None]) -> Callable[[FlagChange], None]:
        key_listener = FlagKeyListener(key, listener)
        self.add_listener(key_listener)

        return key_listener

    def remove_listener(self, listener: Callable[[FlagChange], None]):
        self.__listeners.remove(listener)

    def add_flag_value_change_listener(self, key: str, context: Optional[Mapping[str, Any]], fn: Callable[[FlagValueChange], None]) -> Callable[[FlagChange], None]:
        listener = FlagValueChangeListener(key, context, fn, self.__eval_fn)
        self.add_listener(listener)

        return listener
