"""
Example Player Model

A small game-state model that demonstrates how to observe nested DTO
changes with deepproxy and guard parts of the state with a write handler.
"""

from deepproxy import DeepProxy, ProxyHandler, ProxyOptions
from deepproxy.database import Model, get_database, modelize


@modelize("player")
class PlayerModel(Model):
    """Player state with list wrapping enabled for the inventory."""

    options = ProxyOptions(name="player", proxy_arrays=True, max_depth=6)

    def initialize(self):
        self.sync({
            "name": "hero",
            "stats": {"hp": 10, "mp": 4},
            "inventory": [{"item": "potion", "count": 2}],
        })


class HealthBar:
    """Prints whenever the player's hit points change."""

    def __init__(self, player: PlayerModel):
        player.watch("stats.hp", self.on_hp, context=self)

    def on_hp(self, path, value):
        print(f"[hud] {path} -> {value}")


def run_model_demo():
    player = get_database().acquire("player")
    hud = HealthBar(player)

    player.watch_all(lambda path, value: print(f"[log] {path} = {value!r}"))

    player.dto["stats"]["hp"] = 7
    player.dto["stats"]["mp"] = 4           # unchanged, no notification
    player.dto["inventory"][0]["count"] = 1
    player.dto["inventory"].append({"item": "ether", "count": 1})

    player.clear_watchers(context=hud)
    player.dto["stats"]["hp"] = 3           # only the catch-all log fires


def run_guard_demo():
    state = {"meta": {"version": 1}, "world": {"seed": 42}}

    def on_write(target, key, value):
        path = proxy.get_path(target) or []
        if path[:1] == ["meta"]:
            print(f"[guard] rejected write to meta.{key}")
            return False
        return True

    proxy = DeepProxy(state, ProxyHandler(on_write=on_write))
    root = proxy.create()

    root["meta"]["version"] = 2
    root["world"]["seed"] = 7

    print(f"state: {state}")
    print(f"stats: {proxy.stats}")


if __name__ == "__main__":
    run_model_demo()
    run_guard_demo()
