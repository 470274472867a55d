"""
Tests for Data Models
"""

import pytest

from deepproxy.database.model import (
    Database,
    Model,
    ModelError,
    get_database,
    modelize,
    reset_database,
)


class TestModel:
    """Test suite for change notification on synced DTOs."""

    @pytest.fixture
    def model(self):
        model = Model()
        model.sync({"name": "hero", "stats": {"hp": 10, "mp": 4}})
        return model

    @pytest.fixture
    def calls(self):
        return []

    def test_dto_before_sync(self):
        """Test that a fresh model has no DTO."""
        assert Model().dto is None

    def test_dto_is_proxied(self, model):
        """Test that the DTO is observed through a deep proxy."""
        assert model.proxy.is_proxied(model.dto)
        assert model.dto["stats"]["hp"] == 10

    def test_watch_exact_path(self, model, calls):
        """Test that path subscribers see writes to their path only."""
        model.watch("stats.hp", lambda path, value: calls.append((path, value)))

        model.dto["stats"]["hp"] = 7
        model.dto["stats"]["mp"] = 1

        assert calls == [("stats.hp", 7)]
        assert model.dto["stats"]["hp"] == 7

    def test_unchanged_value_not_notified(self, model, calls):
        """Test that writing the same value is silent."""
        model.watch("stats.hp", lambda path, value: calls.append(value))

        model.dto["stats"]["hp"] = 10

        assert calls == []

    def test_new_key_notified(self, model, calls):
        """Test that adding a key counts as a change."""
        model.watch_all(lambda path, value: calls.append(path))

        model.dto["stats"]["sp"] = 0

        assert calls == ["stats.sp"]

    def test_watch_all(self, model, calls):
        """Test catch-all subscribers."""
        model.watch_all(lambda path, value: calls.append((path, value)))

        model.dto["name"] = "villain"
        model.dto["stats"]["hp"] = 1

        assert calls == [("name", "villain"), ("stats.hp", 1)]

    def test_unwatch(self, model, calls):
        """Test removing a single path subscription."""
        def on_hp(path, value):
            calls.append(value)

        model.watch("stats.hp", on_hp)
        model.unwatch("stats.hp", on_hp)
        model.dto["stats"]["hp"] = 2

        assert calls == []

    def test_unwatch_by_context(self, model, calls):
        """Test removing every subscription of one owner."""
        hud, log = object(), object()
        model.watch("stats.hp", lambda p, v: calls.append("hud"), context=hud)
        model.watch("stats.hp", lambda p, v: calls.append("log"), context=log)
        model.watch_all(lambda p, v: calls.append("hud-all"), context=hud)

        model.clear_watchers(context=hud)
        model.dto["stats"]["hp"] = 5

        assert calls == ["log"]

    def test_unwatch_path(self, model, calls):
        """Test clearing one path."""
        model.watch("stats.hp", lambda p, v: calls.append(p))
        model.watch("name", lambda p, v: calls.append(p))

        model.unwatch_path("stats.hp")
        model.dto["stats"]["hp"] = 5
        model.dto["name"] = "x"

        assert calls == ["name"]

    def test_unwatch_all_callback(self, model, calls):
        """Test removing a catch-all subscription."""
        def on_any(path, value):
            calls.append(path)

        model.watch_all(on_any)
        model.unwatch_all(on_any)
        model.dto["name"] = "x"

        assert calls == []

    def test_unwatch_all_bound_method(self, model):
        """Test removing a catch-all subscription registered as a bound method."""
        class Hud:
            def __init__(self):
                self.paths = []

            def on_change(self, path, value):
                self.paths.append(path)

        hud = Hud()
        model.watch_all(hud.on_change, context=hud)
        model.unwatch_all(hud.on_change, context=hud)
        model.dto["name"] = "x"

        assert hud.paths == []

    def test_resync_replaces_dto(self, model, calls):
        """Test that sync swaps the observed object."""
        model.watch("level", lambda p, v: calls.append(v))
        model.sync({"level": 1})

        model.dto["level"] = 2

        assert calls == [2]
        assert model.dto == {"level": 2}


class TestDatabase:
    """Test suite for the model registry."""

    @pytest.fixture
    def db(self):
        return Database()

    @pytest.fixture
    def player_model(self, db):
        @modelize("player", database=db)
        class PlayerModel(Model):
            def initialize(self):
                self.initialized = getattr(self, "initialized", 0) + 1

        return PlayerModel

    def test_register_via_decorator(self, db, player_model):
        """Test that the decorator registers the class."""
        assert "player" in db
        assert player_model in db

    def test_acquire_returns_shared_instance(self, db, player_model):
        """Test lazily created singletons."""
        first = db.acquire(player_model)
        second = db.acquire("player")

        assert first is second
        assert isinstance(first, player_model)
        assert first.initialized == 1

    def test_create_returns_fresh_instance(self, db, player_model):
        """Test that create never shares."""
        assert db.create("player") is not db.create("player")
        assert db.create(player_model).initialized == 1

    def test_unnamed_model_rejected(self, db):
        """Test that undecorated models cannot be registered."""
        class Anonymous(Model):
            pass

        with pytest.raises(ModelError):
            db.register(Anonymous)

    def test_unknown_model(self, db):
        """Test lookups of unregistered names."""
        with pytest.raises(ModelError):
            db.acquire("missing")

    def test_unregister(self, db, player_model):
        """Test removing a model class."""
        db.acquire("player")
        db.unregister(player_model)

        assert "player" not in db
        with pytest.raises(ModelError):
            db.acquire("player")
        with pytest.raises(ModelError):
            db.unregister(player_model)

    def test_default_database(self):
        """Test registration into the process-wide database."""
        reset_database()
        try:
            @modelize("inventory")
            class InventoryModel(Model):
                pass

            assert get_database().acquire("inventory").dto is None
        finally:
            reset_database()
