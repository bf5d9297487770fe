"""
Randomised move sequences: after every commit, channel positions are dense
per container, category positions are dense, and the controller's mapping
equals a fresh rebuild from the store.
"""

import random
from collections import defaultdict

import pytest

from channel_order.engine.collision import DropTarget
from channel_order.engine.containers import build_containers
from channel_order.engine.gesture import GestureController, GestureState
from channel_order.tests.conftest import SERVER_ID, seed_store


def _assert_dense(store):
    by_container = defaultdict(list)
    for ch in store.get_channels(SERVER_ID):
        by_container[ch.category_id].append(ch.position)
    for positions in by_container.values():
        assert sorted(positions) == list(range(len(positions)))

    category_positions = sorted(c.position for c in store.get_categories(SERVER_ID))
    assert category_positions == list(range(len(category_positions)))


def _random_target(rng: random.Random, controller: GestureController) -> DropTarget | None:
    roll = rng.random()
    if roll < 0.1:
        return None
    container_id = rng.choice(list(controller.containers))
    siblings = controller.containers[container_id]
    if siblings and roll < 0.6:
        return DropTarget(id=rng.choice(siblings), kind="channel")
    return DropTarget(id=f"drop:{container_id}", kind="container", container_id=container_id)


def _drag_channel(rng, controller):
    all_ids = [ch for ids in controller.containers.values() for ch in ids]
    active = rng.choice(all_ids)
    controller.start(active, "channel")
    target = None
    for _ in range(rng.randint(0, 4)):
        target = _random_target(rng, controller)
        controller.over(active, target)
    if rng.random() < 0.5:
        target = _random_target(rng, controller)
    controller.end(active, target)


def _drag_category(rng, controller, store):
    ids = [c.id for c in store.get_categories(SERVER_ID)]
    active, over = rng.choice(ids), rng.choice(ids)
    controller.start(active, "category")
    controller.end(active, DropTarget(id=over, kind="category"))


@pytest.mark.parametrize("seed", range(25))
def test_random_moves_keep_positions_dense(seed, store, persister, scheduler):
    rng = random.Random(seed)
    seed_store(store, {None: [1, 2, 3], 10: [4, 5, 6], 11: [], 12: [7]})
    controller = GestureController(SERVER_ID, store, persister, schedule=scheduler)

    for _ in range(30):
        if rng.random() < 0.7:
            _drag_channel(rng, controller)
        else:
            _drag_category(rng, controller, store)
        scheduler.run_all()

        assert controller.state is GestureState.IDLE
        _assert_dense(store)
        rebuilt = build_containers(store.get_channels(SERVER_ID), store.get_categories(SERVER_ID))
        assert controller.containers == rebuilt
        assert sorted(ch for ids in controller.containers.values() for ch in ids) == [1, 2, 3, 4, 5, 6, 7]
