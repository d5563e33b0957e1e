"""
Balloon Archery Test Suite — Stage 1: EASY

Basic sanity checks — does everything work at the most fundamental level?
These tests should ALWAYS pass. If any fail, something is seriously broken.

Tests:
    - Viewport geometry (bow anchor, rest position, max pull)
    - Grabbing, drawing and releasing the arrow
    - Release direction and speed
    - Flight under gravity and the out-of-bounds check
    - Balloon spawning ranges and hit detection basics
    - Round bookkeeping (score, ammo, issuance)
"""

import numpy as np
import pytest

from balloon_engine.aim import (
    AimGeometry,
    Viewport,
    clamp_pull,
    launch_velocity,
)
from balloon_engine.collision import (
    find_hit,
    hsl_color,
    spawn_balloon,
    spawn_pool,
)
from balloon_engine.flight import (
    GRAVITY,
    Projectile,
    ProjectileState,
    advance_projectile,
    is_out_of_bounds,
    simulate_flight,
)
from balloon_engine.round_state import EventQueue, RoundPhase, RoundState, RoundEnded
from balloon_engine.simulation import BalloonPopSimulation, DEFAULT_ROUND_CONFIG

from conftest import place_balloon


# ============================================================
# 1. Geometry
# ============================================================

class TestGeometry:
    """Bow placement and draw limits follow the viewport."""

    def test_anchor_position(self, geometry):
        """Bow sits at 15% width, half height."""
        assert geometry.anchor == pytest.approx((144.0, 270.0))

    def test_rest_position_in_front_of_bow(self, geometry):
        """A fresh arrow rests 40px in front of the bow."""
        assert geometry.rest_position == pytest.approx((184.0, 270.0))

    def test_max_pull_uses_smaller_side(self, geometry):
        """Max pull is a quarter of min(width, height)."""
        assert geometry.max_pull == pytest.approx(135.0)

    def test_portrait_viewport(self):
        """Max pull follows the width on a portrait canvas."""
        g = AimGeometry.from_viewport(Viewport(400.0, 800.0))
        assert g.max_pull == pytest.approx(100.0)
        assert g.anchor == pytest.approx((60.0, 400.0))

    def test_invalid_viewport_rejected(self):
        """Zero or negative dimensions are a programming error."""
        with pytest.raises(ValueError):
            Viewport(0.0, 540.0)
        with pytest.raises(ValueError):
            Viewport(960.0, -1.0)


# ============================================================
# 2. Aiming
# ============================================================

class TestLaunchVelocity:
    """The release rule: launch along the negated pull vector."""

    def test_documented_example(self):
        """Pull (-30, 0) at power 0.25 gives (7.5, 0)."""
        vel = launch_velocity(np.array([-30.0, 0.0]), power=0.25)
        assert np.allclose(vel, [7.5, 0.0])

    def test_pull_down_launches_up(self):
        """Drawing below the bow sends the arrow upward (negative y)."""
        vel = launch_velocity(np.array([0.0, 40.0]))
        assert vel[1] < 0
        assert abs(vel[0]) < 1e-12

    def test_speed_scales_with_pull(self):
        """Speed is pull length times power."""
        vel = launch_velocity(np.array([-60.0, -80.0]), power=0.25)
        assert np.linalg.norm(vel) == pytest.approx(25.0)

    def test_zero_pull_gives_zero_velocity(self):
        """A zero vector must not divide by zero."""
        vel = launch_velocity(np.zeros(2))
        assert np.allclose(vel, 0.0)
        assert not np.any(np.isnan(vel))


class TestClampPull:
    def test_short_offset_untouched(self):
        offset = np.array([30.0, -40.0])
        assert np.allclose(clamp_pull(offset, 135.0), offset)

    def test_long_offset_clamped(self):
        clamped = clamp_pull(np.array([-500.0, 0.0]), 135.0)
        assert np.allclose(clamped, [-135.0, 0.0])

    def test_zero_offset(self):
        clamped = clamp_pull(np.zeros(2), 135.0)
        assert np.allclose(clamped, 0.0)


class TestAimController:
    """Drag gesture basics."""

    def test_grab_at_rest_position(self, aim, resting_arrow, geometry):
        """Pointer on the resting arrow starts a drag."""
        assert aim.begin_drag(resting_arrow, geometry.rest_array) is True
        assert resting_arrow.state is ProjectileState.DRAGGING

    def test_grab_too_far_rejected(self, aim, resting_arrow, geometry):
        """Pointer 40px or more from the arrow is ignored."""
        assert aim.begin_drag(resting_arrow, geometry.rest_array + np.array([0.0, 40.0])) is False
        assert resting_arrow.state is ProjectileState.RESTING
        assert aim.end_drag(resting_arrow) is None

    def test_grab_just_inside_radius(self, aim, resting_arrow, geometry):
        assert aim.begin_drag(resting_arrow, geometry.rest_array + np.array([0.0, 39.9])) is True

    def test_grab_flying_arrow_rejected(self, aim, geometry):
        arrow = Projectile(
            position=geometry.rest_array, velocity=np.array([5.0, 0.0]),
            state=ProjectileState.FLYING,
        )
        assert aim.begin_drag(arrow, geometry.rest_array) is False
        assert arrow.state is ProjectileState.FLYING

    def test_update_without_drag_is_noop(self, aim, resting_arrow, geometry):
        """Moves while resting don't move the arrow."""
        assert aim.update_drag(resting_arrow, np.array([10.0, 10.0])) is False
        assert np.allclose(resting_arrow.position, geometry.rest_array)

    def test_drag_moves_arrow(self, aim, resting_arrow, geometry):
        aim.begin_drag(resting_arrow, geometry.rest_array)
        aim.update_drag(resting_arrow, geometry.anchor_array + np.array([-80.0, 20.0]))
        assert np.allclose(resting_arrow.position, geometry.anchor_array + np.array([-80.0, 20.0]))

    def test_drawn_arrow_faces_bow(self, aim, resting_arrow, geometry):
        """While drawn, the arrow points from itself back toward the bow."""
        aim.begin_drag(resting_arrow, geometry.rest_array)
        aim.update_drag(resting_arrow, geometry.anchor_array + np.array([-100.0, 0.0]))
        assert resting_arrow.angle == pytest.approx(0.0)

        aim.update_drag(resting_arrow, geometry.anchor_array + np.array([0.0, 100.0]))
        assert resting_arrow.angle == pytest.approx(-np.pi / 2)

    def test_release_fires_forward(self, aim, resting_arrow, geometry):
        """Drawing back 30px and letting go fires at (7.5, 0)."""
        aim.begin_drag(resting_arrow, geometry.rest_array)
        aim.update_drag(resting_arrow, geometry.anchor_array + np.array([-30.0, 0.0]))
        vel = aim.end_drag(resting_arrow)
        assert vel is not None
        assert np.allclose(vel, [7.5, 0.0])
        assert resting_arrow.state is ProjectileState.FLYING
        assert aim.end_drag(resting_arrow) is None

    def test_release_with_pointer_applies_it(self, aim, resting_arrow, geometry):
        """A pointer on release counts as a final move."""
        aim.begin_drag(resting_arrow, geometry.rest_array)
        vel = aim.end_drag(resting_arrow, geometry.anchor_array + np.array([-40.0, 0.0]))
        assert np.allclose(vel, [10.0, 0.0])

    def test_short_pull_renocks(self, aim, resting_arrow, geometry):
        """Pulls of 6px or less put the arrow back at rest."""
        aim.begin_drag(resting_arrow, geometry.rest_array)
        aim.update_drag(resting_arrow, geometry.anchor_array + np.array([-6.0, 0.0]))
        assert aim.end_drag(resting_arrow) is None
        assert resting_arrow.state is ProjectileState.RESTING
        assert np.allclose(resting_arrow.position, geometry.rest_array)
        assert np.allclose(resting_arrow.velocity, 0.0)
        assert resting_arrow.angle == 0.0

    def test_end_without_drag_is_noop(self, aim, resting_arrow):
        assert aim.end_drag(resting_arrow) is None
        assert resting_arrow.state is ProjectileState.RESTING


# ============================================================
# 3. Flight
# ============================================================

class TestFlight:
    """Per-tick arrow flight."""

    def test_gravity_added_each_tick(self):
        arrow = Projectile(
            position=np.array([100.0, 100.0]), velocity=np.array([5.0, 0.0]),
            state=ProjectileState.FLYING,
        )
        advance_projectile(arrow)
        assert arrow.velocity[1] == pytest.approx(GRAVITY)
        assert np.allclose(arrow.position, [105.0, 100.0 + GRAVITY])

    def test_nose_follows_velocity(self):
        arrow = Projectile(
            position=np.array([100.0, 100.0]), velocity=np.array([3.0, -4.0]),
            state=ProjectileState.FLYING,
        )
        advance_projectile(arrow)
        assert arrow.angle == pytest.approx(np.arctan2(arrow.velocity[1], arrow.velocity[0]))

    def test_resting_arrow_does_not_fall(self):
        arrow = Projectile.at_rest(np.array([184.0, 270.0]))
        advance_projectile(arrow)
        assert np.allclose(arrow.position, [184.0, 270.0])
        assert np.allclose(arrow.velocity, 0.0)

    @pytest.mark.parametrize("point, outside", [
        ((480.0, 270.0), False),
        ((0.0, 0.0), False),
        ((960.0, 540.0), False),
        ((-0.1, 270.0), True),
        ((960.1, 270.0), True),
        ((480.0, -0.1), True),
        ((480.0, 540.1), True),
    ])
    def test_out_of_bounds(self, point, outside):
        assert is_out_of_bounds(np.array(point), 960.0, 540.0) is outside

    def test_simulate_flight_ends_outside(self):
        path = simulate_flight(np.array([184.0, 270.0]), np.array([10.0, 0.0]), 960.0, 540.0)
        assert np.allclose(path[0], [184.0, 270.0])
        assert is_out_of_bounds(path[-1], 960.0, 540.0)
        assert not any(is_out_of_bounds(p, 960.0, 540.0) for p in path[:-1])


# ============================================================
# 4. Balloons
# ============================================================

class TestBalloonSpawn:
    """Spawned balloons fall inside the documented ranges."""

    def test_spawn_ranges(self, seeded_rng):
        for _ in range(500):
            b = spawn_balloon(seeded_rng, 960.0, 540.0)
            assert 25.0 <= b.radius < 35.0
            assert 1.0 <= abs(b.vx) < 2.0
            assert 960.0 * 0.6 <= b.position[0] <= 960.0 - b.radius - 20.0
            assert 80.0 <= b.position[1] <= 540.0 - 100.0
            assert b.popped is False

    def test_both_directions_occur(self, seeded_rng):
        signs = {np.sign(spawn_balloon(seeded_rng, 960.0, 540.0).vx) for _ in range(100)}
        assert signs == {-1.0, 1.0}

    def test_pool_size(self, seeded_rng):
        assert len(spawn_pool(seeded_rng, 960.0, 540.0)) == 5
        assert len(spawn_pool(seeded_rng, 960.0, 540.0, count=8)) == 8

    def test_color_tag(self, seeded_rng):
        assert hsl_color(200) == "hsl(200,70%,60%)"
        b = spawn_balloon(seeded_rng, 960.0, 540.0)
        assert b.color.startswith("hsl(") and b.color.endswith(",70%,60%)")


class TestHitDetection:
    def test_tip_inside_is_hit(self):
        balloons = [place_balloon(600.0, 300.0)]
        assert find_hit(np.array([610.0, 300.0]), balloons) == 0

    def test_tip_on_edge_is_miss(self):
        """Distance must be strictly less than the radius."""
        balloons = [place_balloon(600.0, 300.0, radius=30.0)]
        assert find_hit(np.array([630.0, 300.0]), balloons) is None

    def test_popped_balloon_ignored(self):
        balloon = place_balloon(600.0, 300.0)
        balloon.popped = True
        assert find_hit(np.array([600.0, 300.0]), [balloon]) is None

    def test_empty_pool(self):
        assert find_hit(np.array([600.0, 300.0]), []) is None


# ============================================================
# 5. Round Bookkeeping
# ============================================================

class TestRoundState:
    def test_reset(self):
        state = RoundState()
        state.reset(ammo=5)
        assert state.score == 0
        assert state.ammo == 5
        assert state.phase is RoundPhase.ACTIVE
        assert state.running

    def test_issue_decrements(self):
        state = RoundState()
        state.reset(ammo=2)
        assert state.try_issue() is True
        assert state.ammo == 1

    def test_issue_at_zero_ends_round(self):
        state = RoundState()
        state.reset(ammo=0)
        assert state.try_issue() is False
        assert state.ammo == 0
        assert state.phase is RoundPhase.ENDED

    def test_negative_ammo_rejected(self):
        with pytest.raises(ValueError):
            RoundState().reset(ammo=-1)

    def test_hit_adds_ten(self):
        state = RoundState()
        state.reset()
        state.record_hit()
        assert state.score == 10
        state.record_miss()
        assert state.score == 10
        assert state.accuracy == pytest.approx(0.5)


class TestEventQueue:
    def test_due_events_in_order(self):
        queue = EventQueue()
        queue.schedule(100.0, RoundEnded(final_score=1))
        queue.schedule(50.0, RoundEnded(final_score=2))
        queue.schedule(100.0, RoundEnded(final_score=3))
        assert queue.pop_due(40.0) == []
        due = queue.pop_due(100.0)
        assert [e.final_score for e in due] == [2, 1, 3]
        assert len(queue) == 0

    def test_clear(self):
        queue = EventQueue()
        queue.schedule(10.0, RoundEnded(final_score=0))
        queue.clear()
        assert queue.pop_due(1e9) == []


# ============================================================
# 6. Simulation Basics
# ============================================================

class TestSimulationBasics:
    def test_defaults(self):
        sim = BalloonPopSimulation()
        assert sim.config == DEFAULT_ROUND_CONFIG
        assert sim.phase is RoundPhase.NOT_STARTED
        assert sim.projectile is None

    def test_start_round(self, sim):
        assert sim.running
        assert sim.score == 0
        assert sim.ammo == 5
        assert len(sim.balloons) == 5
        assert sim.projectile.state is ProjectileState.RESTING
        assert np.allclose(sim.projectile.position, sim.geometry.rest_array)

    def test_custom_config_applied(self):
        sim = BalloonPopSimulation(round_config={"ammo": 9, "pool_size": 3}, seed=1)
        sim.start_round()
        assert sim.ammo == 9
        assert len(sim.balloons) == 3

    def test_invalid_config_rejected(self):
        with pytest.raises(ValueError):
            BalloonPopSimulation(round_config={"pool_size": 0})
        with pytest.raises(ValueError):
            BalloonPopSimulation(round_config={"ammo": -2})

    def test_tick_before_start_is_noop(self):
        sim = BalloonPopSimulation(seed=3)
        assert sim.tick() == []
        assert sim.time_ms == 0.0

    def test_pointer_before_start_ignored(self):
        sim = BalloonPopSimulation(seed=3)
        assert sim.on_pointer_down(np.array([184.0, 270.0])) is False
        assert sim.on_pointer_up() == []
