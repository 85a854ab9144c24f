from bstlab.animation import (
    AnimatedLink,
    LinkAnimation,
    RotationAnimator,
    RotationPhase,
    TargetSimulation,
    rotation_targets,
)
from bstlab.config import EditorSettings
from bstlab.scheduler import ManualScheduler
from bstlab.tree import Direction, Side, Tree, TreeStore


def _setup(with_grandchild: bool = False, settings: EditorSettings = None):
    tree = Tree().insert_root(20, (100, 100), node_id="a")
    tree = tree.insert_as_child("a", Side.RIGHT, 30, (180, 180), node_id="b")
    if with_grandchild:
        tree = tree.insert_as_child("b", Side.LEFT, 25, (140, 260), node_id="c")
    store = TreeStore(tree)
    scheduler = ManualScheduler()
    animator = RotationAnimator(store, scheduler, settings or EditorSettings())
    return store, scheduler, animator


def _tick_while(scheduler, animator, phase, limit=500):
    ticks = 0
    while animator.phase is phase:
        assert ticks < limit, "phase did not end"
        scheduler.tick()
        ticks += 1
    return ticks


def test_request_enters_node_phase_without_visible_links():
    store, scheduler, animator = _setup()

    assert animator.request_rotation("a", Direction.LEFT)

    assert animator.phase is RotationPhase.NODES_MOVING
    assert scheduler.is_running
    assert scheduler.interval_ms == 16
    assert not animator.links_visible
    kinds = [link.kind for link in animator.animated_links]
    assert kinds == [LinkAnimation.DELETE, LinkAnimation.CREATE]
    assert all(link.progress == 0 for link in animator.animated_links)


def test_structure_unchanged_while_nodes_move():
    store, scheduler, animator = _setup()
    animator.request_rotation("a", Direction.LEFT)

    for _ in range(5):
        scheduler.tick()

    tree = store.tree
    assert animator.phase is RotationPhase.NODES_MOVING
    assert tree.root.id == "a"
    assert tree.node("a").right_id == "b"
    # Nodes have started moving toward their targets
    assert tree.node("a").x < 100
    assert tree.node("b").y < 180


def test_rotation_committed_after_convergence_with_snapped_positions():
    store, scheduler, animator = _setup()
    animator.request_rotation("a", Direction.LEFT)

    _tick_while(scheduler, animator, RotationPhase.NODES_MOVING)

    assert animator.phase is RotationPhase.LINKS_ANIMATING
    assert animator.links_visible
    tree = store.tree
    assert tree.root.id == "b"
    assert tree.node("b").left_id == "a"
    assert tree.node("a").right_id is None
    assert tree.node("a").position == (50, 150)
    assert tree.node("b").position == (100, 100)
    assert tree.in_order_values() == [20, 30]


def test_request_dropped_while_animating():
    store, scheduler, animator = _setup()
    animator.request_rotation("a", Direction.LEFT)

    assert not animator.request_rotation("a", Direction.LEFT)
    assert animator.phase is RotationPhase.NODES_MOVING

    _tick_while(scheduler, animator, RotationPhase.NODES_MOVING)
    generation = store.tree.generation
    links = animator.animated_links

    assert not animator.request_rotation("b", Direction.RIGHT)
    assert animator.phase is RotationPhase.LINKS_ANIMATING
    assert animator.animated_links == links
    assert store.tree.generation == generation


def test_link_progress_monotonic_and_ends_at_one():
    store, scheduler, animator = _setup(with_grandchild=True)
    history = []

    def record():
        if animator.links_visible:
            history.append([link.progress for link in animator.animated_links])

    animator.on_frame = record
    animator.request_rotation("a", Direction.LEFT)
    scheduler.run_until_idle()

    assert history
    for before, after in zip(history, history[1:]):
        assert all(b <= a for b, a in zip(before, after))
    assert all(p <= 1.0 for frame in history for p in frame)
    assert history[-1] == [1.0, 1.0, 1.0]
    assert animator.phase is RotationPhase.IDLE
    assert animator.animated_links == ()
    assert not scheduler.is_running


def test_phase_sequence():
    store, scheduler, animator = _setup()
    phases = []
    animator.on_phase_changed = phases.append

    animator.request_rotation("a", Direction.LEFT)
    scheduler.run_until_idle()

    assert phases == [
        RotationPhase.NODES_MOVING,
        RotationPhase.LINKS_ANIMATING,
        RotationPhase.IDLE,
    ]


def test_grandchild_is_reparented_with_swinging_link():
    store, scheduler, animator = _setup(with_grandchild=True)
    animator.request_rotation("a", Direction.LEFT)

    reparent = [l for l in animator.animated_links if l.kind is LinkAnimation.REPARENT][0]
    assert reparent.start_source == (180, 180)
    assert reparent.end_source == (50, 150)
    assert reparent.start_target == (140, 260)
    assert reparent.replaces == ("a", "c")

    scheduler.run_until_idle()

    tree = store.tree
    assert tree.node("a").right_id == "c"
    assert tree.node("b").left_id == "a"
    assert tree.node("c").position == (140, 260)


def test_rotation_without_child_is_rejected():
    store, scheduler, animator = _setup()
    tree = store.tree

    assert not animator.request_rotation("a", Direction.RIGHT)
    assert not animator.request_rotation("missing", Direction.LEFT)

    assert animator.phase is RotationPhase.IDLE
    assert not scheduler.is_running
    assert store.tree is tree


def test_abort_when_pivot_disappears():
    store, scheduler, animator = _setup()
    animator.request_rotation("a", Direction.LEFT)
    for _ in range(20):
        scheduler.tick()
    assert store.tree.node("a").position != (100, 100)

    store.commit(store.tree.delete_leaf("b"))
    _tick_while(scheduler, animator, RotationPhase.NODES_MOVING)

    assert animator.phase is RotationPhase.IDLE
    assert not scheduler.is_running
    assert animator.animated_links == ()
    assert store.tree.root.id == "a"
    assert store.tree.node("a").right_id is None
    assert store.tree.node("a").position == (100, 100)


def test_dispose_stops_timer_and_rejects_requests():
    store, scheduler, animator = _setup()
    animator.request_rotation("a", Direction.LEFT)
    scheduler.tick()

    animator.dispose()

    assert not scheduler.is_running
    assert animator.phase is RotationPhase.IDLE
    assert not animator.request_rotation("a", Direction.LEFT)
    assert store.tree.root.id == "a"


def test_animated_link_segments():
    create = AnimatedLink("c", LinkAnimation.CREATE, (0, 0), (10, 0), (0, 0), (10, 0), 0.5)
    delete = AnimatedLink("d", LinkAnimation.DELETE, (0, 0), (10, 0), (0, 0), (10, 0), 1.0)
    swing = AnimatedLink("r", LinkAnimation.REPARENT, (0, 0), (5, 10), (10, 0), (5, 10), 0.5)

    assert create.segment() == ((0, 0), (5.0, 0.0))
    assert delete.segment() == ((0, 0), (0.0, 0.0))
    assert swing.segment() == ((5.0, 0.0), (5, 10))


def test_animated_link_progress_clamped():
    link = AnimatedLink("c", LinkAnimation.CREATE, (0, 0), (1, 1), (0, 0), (1, 1), 0.98)
    assert link.advanced(0.05).progress == 1.0
    assert link.advanced(0.05).advanced(0.05).progress == 1.0


def test_simulation_converges_toward_targets():
    tree = Tree().insert_root(20, (0, 0), node_id="a")
    sim = TargetSimulation.for_tree(tree, {"a": (100, 0)}, EditorSettings())

    steps = 0
    while not sim.converged:
        sim.step()
        steps += 1
        assert steps < 1000

    x, _ = sim.positions()["a"]
    assert 0 < x < 100
    sim.snap()
    assert sim.positions()["a"] == (100, 0)


def test_targets_keep_other_nodes_in_place():
    tree = Tree().insert_root(20, (100, 100), node_id="a")
    tree = tree.insert_as_child("a", Side.LEFT, 10, (20, 180), node_id="l")
    tree = tree.insert_as_child("a", Side.RIGHT, 30, (180, 180), node_id="b")
    tree = tree.insert_as_child("b", Side.RIGHT, 40, (260, 260), node_id="bb")

    targets = rotation_targets(tree, tree.node("a"), tree.node("b"), Direction.LEFT, 50)

    assert targets["a"] == (50, 150)
    assert targets["b"] == (100, 100)
    assert targets["l"] == (20, 180)
    assert targets["bb"] == (260, 260)


def test_targets_translate_subtrees_when_enabled():
    tree = Tree().insert_root(20, (100, 100), node_id="a")
    tree = tree.insert_as_child("a", Side.LEFT, 10, (20, 180), node_id="l")
    tree = tree.insert_as_child("a", Side.RIGHT, 30, (180, 180), node_id="b")
    tree = tree.insert_as_child("b", Side.LEFT, 25, (140, 260), node_id="inner")
    tree = tree.insert_as_child("b", Side.RIGHT, 40, (260, 260), node_id="bb")

    targets = rotation_targets(tree, tree.node("a"), tree.node("b"), Direction.LEFT, 50,
                               translate_subtrees=True)

    assert targets["l"] == (-30, 230)
    assert targets["bb"] == (180, 180)
    assert targets["inner"] == (140, 260)


def test_right_rotation_moves_node_down_right():
    tree = Tree().insert_root(20, (100, 100), node_id="a")
    tree = tree.insert_as_child("a", Side.LEFT, 10, (20, 180), node_id="b")
    store = TreeStore(tree)
    scheduler = ManualScheduler()
    animator = RotationAnimator(store, scheduler)

    assert animator.request_rotation("a", Direction.RIGHT)
    scheduler.run_until_idle()

    assert store.tree.root.id == "b"
    assert store.tree.node("a").position == (150, 150)
    assert store.tree.node("b").right_id == "a"
