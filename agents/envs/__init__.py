from agents.envs.balloon_pop_env import BalloonPopEnv

__all__ = ["BalloonPopEnv"]
