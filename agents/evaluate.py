"""
Balloon Archery — Evaluation Script

Play rounds headlessly across round presets with a baseline archer and report
scores, pop rates and (optionally) 2-D flight-path plots.

Usage:
    python agents/evaluate.py --episodes 50
    python agents/evaluate.py --policy aimed --preset classic --visualize
    python agents/evaluate.py --episodes 200 --seed 7
"""

import argparse
import os
import sys
from pathlib import Path

import numpy as np
import matplotlib
matplotlib.use("Agg")  # Non-interactive backend for saving plots
import matplotlib.pyplot as plt
import yaml
from rich.console import Console
from rich.table import Table

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from agents.envs.balloon_pop_env import BalloonPopEnv

console = Console()

CONFIGS_DIR = Path(__file__).resolve().parent / "configs"
LOGS_DIR = Path(__file__).resolve().parent / "logs"
PLOTS_DIR = LOGS_DIR / "eval_plots"

POLICIES = ("random", "aimed")


def load_presets(config_path: Path = None) -> list:
    """Load round presets from YAML."""
    if config_path is None:
        config_path = CONFIGS_DIR / "rounds.yaml"
    with open(config_path) as f:
        data = yaml.safe_load(f)
    return data["presets"]


def preset_overrides(preset: dict) -> dict:
    """Round config overrides in a preset (everything but its name)."""
    return {k: v for k, v in preset.items() if k != "name"}


def aimed_action(env: BalloonPopEnv) -> np.ndarray:
    """Full draw straight at the first live balloon, ignoring gravity and drift."""
    anchor = env.sim.geometry.anchor_array
    live = [b for b in env.sim.balloons if not b.popped]
    if not live:
        return np.array([0.0, 1.0], dtype=np.float32)
    to_balloon = live[0].position - anchor
    angle = np.arctan2(to_balloon[1], to_balloon[0]) / (np.pi / 2)
    return np.array([np.clip(angle, -1.0, 1.0), 1.0], dtype=np.float32)


def play_round(env: BalloonPopEnv, seed: int, policy: str = "random") -> dict:
    """Play one full round. Returns its score, arrow count and flight paths."""
    obs, info = env.reset(seed=seed)
    env.action_space.seed(seed)

    arrows = 0
    pops = 0
    paths = []
    terminated = truncated = False
    while not (terminated or truncated):
        if policy == "aimed":
            action = aimed_action(env)
        else:
            action = env.action_space.sample()
        obs, reward, terminated, truncated, info = env.step(action)
        arrows += 1
        if info["hit"]:
            pops += 1
        if env.last_flight_path:
            paths.append({"points": env.last_flight_path, "hit": info["hit"]})

    return {
        "score": info["score"],
        "arrows": arrows,
        "pops": pops,
        "paths": paths,
        "balloons": [b.to_dict() for b in env.sim.balloons],
        "viewport": (env.sim.viewport.width, env.sim.viewport.height),
        "anchor": env.sim.geometry.anchor,
    }


def evaluate_preset(
    preset: dict,
    n_episodes: int = 100,
    policy: str = "random",
    seed: int = 0,
) -> dict:
    """Play n_episodes rounds of one preset.

    Returns dict with: avg_score, best_score, pop_rate, score_std, last_round.
    """
    env = BalloonPopEnv(round_config=preset_overrides(preset))

    scores = []
    total_arrows = 0
    total_pops = 0
    last_round = None

    for i in range(n_episodes):
        result = play_round(env, seed=seed + i, policy=policy)
        scores.append(result["score"])
        total_arrows += result["arrows"]
        total_pops += result["pops"]
        last_round = result

    env.close()

    return {
        "avg_score": float(np.mean(scores)) if scores else 0.0,
        "best_score": int(np.max(scores)) if scores else 0,
        "score_std": float(np.std(scores)) if scores else 0.0,
        "pop_rate": total_pops / total_arrows if total_arrows else 0.0,
        "arrows": total_arrows,
        "pops": total_pops,
        "rounds": n_episodes,
        "last_round": last_round,
    }


def visualize_round(round_result: dict, preset_name: str, save_dir: Path) -> str:
    """Plot one round's flight paths over the final balloon layout. Returns path."""
    if not round_result or not round_result["paths"]:
        return ""

    width, height = round_result["viewport"]
    fig, ax = plt.subplots(figsize=(12, 7))

    for i, path in enumerate(round_result["paths"]):
        xs = [p[0] for p in path["points"]]
        ys = [p[1] for p in path["points"]]
        color = "green" if path["hit"] else "red"
        ax.plot(xs, ys, color=color, alpha=0.8, linewidth=1.5)
        ax.scatter(xs[0], ys[0], color="blue", s=20, zorder=5)

    for balloon in round_result["balloons"]:
        circle = plt.Circle(
            balloon["position"], balloon["radius"],
            fill=False, color="orange", linewidth=2, alpha=0.7,
        )
        ax.add_patch(circle)

    ax.scatter(*round_result["anchor"], color="saddlebrown", s=120, marker="D", zorder=6)
    ax.axvline(width * 0.55, color="gray", linestyle="--", linewidth=1, alpha=0.5)

    ax.set_xlim(0, width)
    ax.set_ylim(height, 0)  # canvas y grows downward
    ax.set_aspect("equal")
    ax.set_xlabel("x [px]")
    ax.set_ylabel("y [px]")
    ax.set_title(f"Flight paths — {preset_name} (score {round_result['score']})")

    from matplotlib.lines import Line2D
    legend_elements = [
        Line2D([0], [0], color="green", linewidth=2, label="Pop"),
        Line2D([0], [0], color="red", linewidth=2, label="Miss"),
        Line2D([0], [0], color="orange", linewidth=2, label="Balloon"),
        Line2D([0], [0], marker="D", color="saddlebrown", linewidth=0, label="Bow"),
    ]
    ax.legend(handles=legend_elements, loc="upper left")

    save_dir.mkdir(parents=True, exist_ok=True)
    path = save_dir / f"flight_paths_{preset_name}.png"
    plt.savefig(str(path), dpi=150, bbox_inches="tight")
    plt.close(fig)

    return str(path)


def evaluate(
    n_episodes: int = 100,
    preset_name: str = "all",
    policy: str = "random",
    seed: int = 0,
    visualize: bool = False,
    config_path: Path = None,
):
    """Main evaluation function."""

    console.print(f"\n[bold cyan]═══ Balloon Archery Evaluation ═══[/bold cyan]")

    if policy not in POLICIES:
        console.print(f"[red]Unknown policy '{policy}' (choose from {', '.join(POLICIES)})[/red]")
        return

    presets = load_presets(config_path)
    if preset_name != "all":
        presets = [p for p in presets if p["name"] == preset_name]
        if not presets:
            console.print(f"[red]Preset '{preset_name}' not found[/red]")
            return

    console.print(f"  Policy: {policy}")
    console.print(f"  Rounds per preset: {n_episodes}")
    console.print(f"  Presets: {[p['name'] for p in presets]}\n")

    table = Table(title="Evaluation Results")
    table.add_column("Preset", style="cyan")
    table.add_column("Avg Score", justify="right")
    table.add_column("Best", justify="right", style="green")
    table.add_column("Std", justify="right")
    table.add_column("Pop Rate", justify="right", style="yellow")
    table.add_column("Pops / Arrows", justify="right")

    all_results = {}

    for preset in presets:
        console.print(f"  Evaluating: {preset['name']}...")
        results = evaluate_preset(preset, n_episodes=n_episodes, policy=policy, seed=seed)
        all_results[preset["name"]] = results

        table.add_row(
            preset["name"],
            f"{results['avg_score']:.1f}",
            f"{results['best_score']}",
            f"{results['score_std']:.1f}",
            f"{results['pop_rate']:.1%}",
            f"{results['pops']}/{results['arrows']}",
        )

        if visualize:
            plot_path = visualize_round(results["last_round"], preset["name"], PLOTS_DIR)
            if plot_path:
                console.print(f"    📊 Plot saved: {plot_path}")

    console.print()
    console.print(table)
    console.print()

    total_pops = sum(r["pops"] for r in all_results.values())
    total_arrows = sum(r["arrows"] for r in all_results.values())
    if total_arrows:
        console.print(f"  Overall: {total_pops}/{total_arrows} pops ({total_pops/total_arrows:.1%})")

    return all_results


# ---------- CLI ----------
def main(argv=None):
    parser = argparse.ArgumentParser(description="Balloon Archery Evaluation")
    parser.add_argument("--episodes", type=int, default=100,
                        help="Number of rounds per preset")
    parser.add_argument("--preset", type=str, default="all",
                        help="Specific preset name or 'all'")
    parser.add_argument("--policy", type=str, default="random", choices=POLICIES,
                        help="Baseline archer to play with")
    parser.add_argument("--seed", type=int, default=0,
                        help="Seed for the first round; later rounds use seed+i")
    parser.add_argument("--visualize", action="store_true",
                        help="Save a flight-path plot of the last round per preset")
    parser.add_argument("--config", type=str, default=None,
                        help="Path to a presets YAML (default: agents/configs/rounds.yaml)")
    args = parser.parse_args(argv)

    return evaluate(
        n_episodes=args.episodes,
        preset_name=args.preset,
        policy=args.policy,
        seed=args.seed,
        visualize=args.visualize,
        config_path=Path(args.config) if args.config else None,
    )


if __name__ == "__main__":
    main()
