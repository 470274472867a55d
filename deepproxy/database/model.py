"""
Data Models

In-memory data models whose DTOs are observed through a deep proxy.
Writes anywhere in a DTO notify subscribers of the dotted property path,
and a registry hands out model instances by name.
"""

from collections.abc import Mapping
from typing import Any, Callable, Generic, TypeVar

from structlog import get_logger

from deepproxy.proxy.deep_proxy import DeepProxy
from deepproxy.proxy.models import ProxyHandler, ProxyOptions

logger = get_logger(__name__)

D = TypeVar("D")

OnPropertyChanged = Callable[[str, Any], None]
Subscription = tuple[OnPropertyChanged, Any]

_MISSING = object()

# Class attribute holding the registered model name
MODEL_NAME_ATTR = "__model_name__"


class ModelError(Exception):
    """Model registry misuse."""
    pass


def _current_value(target: Any, key: Any) -> Any:
    if isinstance(target, Mapping):
        return target.get(key, _MISSING)
    if isinstance(target, (list, tuple)):
        return target[key] if -len(target) <= key < len(target) else _MISSING
    return getattr(target, key, _MISSING)


class Model(Generic[D]):
    """
    Data model over a DTO.

    Subscriptions come in two grains:
    - watch(path, ...) fires for writes to exactly that dotted path
    - watch_all(...) fires for every change

    Callbacks receive (path, value). The context is an owner token for
    removing many subscriptions at once.

    Usage:
        model = PlayerModel()
        model.sync({"stats": {"hp": 10}})
        model.watch("stats.hp", on_hp, context=hud)
        model.dto["stats"]["hp"] = 7   # on_hp("stats.hp", 7)
    """

    options: ProxyOptions | None = None

    def __init__(self):
        self._dto: D | None = None
        self._proxy: DeepProxy[D] | None = None
        self._watchers: dict[str, list[Subscription]] = {}
        self._catch_all: list[Subscription] = []

    def initialize(self) -> None:
        """Hook called once by the database after construction."""
        pass

    @property
    def dto(self) -> D | None:
        return self._dto

    @property
    def proxy(self) -> DeepProxy[D] | None:
        return self._proxy

    def sync(self, dto: D) -> None:
        """Replace the observed DTO."""
        self._proxy = DeepProxy(dto, ProxyHandler(on_write=self._on_write), self.options)
        self._dto = self._proxy.create()

    def _on_write(self, target: Any, key: Any, value: Any) -> bool:
        old = _current_value(target, key)
        path = [*(self._proxy.get_path(target) or []), str(key)]
        if old is _MISSING or (old is not value and old != value):
            self._notify(".".join(path), value)
        return True

    def _notify(self, path: str, value: Any) -> None:
        for callback, _ in list(self._watchers.get(path, ())):
            callback(path, value)
        for callback, _ in list(self._catch_all):
            callback(path, value)

    # =========================================================================
    # Path Subscriptions
    # =========================================================================

    def watch(self, path: str, callback: OnPropertyChanged, context: Any = None) -> None:
        subscriptions = self._watchers.setdefault(path, [])
        if (callback, context) not in subscriptions:
            subscriptions.append((callback, context))

    def unwatch(self, path: str, callback: OnPropertyChanged, context: Any = None) -> None:
        subscriptions = self._watchers.get(path)
        if subscriptions and (callback, context) in subscriptions:
            subscriptions.remove((callback, context))

    def unwatch_path(self, path: str | None = None, context: Any = None) -> None:
        """
        Remove path subscriptions.

        Args:
            path: Only this path; all paths when omitted.
            context: Only subscriptions of this owner; all owners when omitted.
        """
        paths = [path] if path is not None else list(self._watchers)
        for name in paths:
            subscriptions = self._watchers.get(name)
            if subscriptions is None:
                continue
            if context is None:
                subscriptions.clear()
            else:
                subscriptions[:] = [s for s in subscriptions if s[1] is not context]

    # =========================================================================
    # Catch-all Subscriptions
    # =========================================================================

    def watch_all(self, callback: OnPropertyChanged, context: Any = None) -> None:
        self._catch_all.append((callback, context))

    def unwatch_all(self, callback: OnPropertyChanged, context: Any = None) -> None:
        self._catch_all = [
            s for s in self._catch_all
            if not (s[0] == callback and s[1] is context)
        ]

    def clear_watchers(self, context: Any = None) -> None:
        """Remove all subscriptions, or all of one owner."""
        self.unwatch_path(None, context)
        if context is None:
            self._catch_all.clear()
        else:
            self._catch_all = [s for s in self._catch_all if s[1] is not context]


def model_name(cls: type) -> str | None:
    """Registered name of a model class."""
    return cls.__dict__.get(MODEL_NAME_ATTR)


class Database:
    """
    Registry of model classes and their shared instances.

    Usage:
        db = Database()
        db.register(PlayerModel)
        player = db.acquire("player")
    """

    def __init__(self):
        self._classes: dict[str, type[Model]] = {}
        self._instances: dict[str, Model] = {}

    def _name_of(self, cls: type[Model] | str) -> str:
        name = cls if isinstance(cls, str) else model_name(cls)
        if not name:
            raise ModelError(f"Invalid model: {cls!r} is not decorated with @modelize")
        if name not in self._classes:
            raise ModelError(f"Model not registered: {name}")
        return name

    def register(self, cls: type[Model]) -> None:
        name = model_name(cls)
        if not name:
            raise ModelError(f"Invalid model: {cls!r} is not decorated with @modelize")
        self._classes[name] = cls
        logger.debug("model_registered", model=name)

    def unregister(self, cls: type[Model]) -> None:
        name = self._name_of(cls)
        del self._classes[name]
        self._instances.pop(name, None)

    def acquire(self, cls: type[Model] | str) -> Model:
        """Shared instance of a model, created and initialized on first use."""
        name = self._name_of(cls)
        instance = self._instances.get(name)
        if instance is None:
            instance = self._classes[name]()
            instance.initialize()
            self._instances[name] = instance
        return instance

    def create(self, cls: type[Model] | str) -> Model:
        """New, initialized instance of a model."""
        name = self._name_of(cls)
        instance = self._classes[name]()
        instance.initialize()
        return instance

    def __contains__(self, cls: type[Model] | str) -> bool:
        name = cls if isinstance(cls, str) else model_name(cls)
        return name in self._classes


# Global database instance - lazy loaded
_database: Database | None = None


def get_database() -> Database:
    """Get the process-wide model database."""
    global _database
    if _database is None:
        _database = Database()
    return _database


def reset_database() -> None:
    global _database
    _database = None


def modelize(name: str, database: Database | None = None) -> Callable[[type], type]:
    """
    Class decorator naming a model and registering it.

    Args:
        name: Registry name of the model.
        database: Target registry; the process-wide one when omitted.
    """
    def decorator(cls: type) -> type:
        setattr(cls, MODEL_NAME_ATTR, name)
        (database or get_database()).register(cls)
        return cls
    return decorator
