"""
Random policy for the rabbit foraging environment.
Runs a few generations with uniformly sampled hop actions and prints
what happened in each, which is handy for checking rewards and lifetimes.
"""
from rabbitforage.rllib.foraging_rabbits.rabbit_forage_rllib_env import RabbitForage
from rabbitforage.rllib.foraging_rabbits.config.config_env_rabbit_forage import config_env

# external libraries
import numpy as np


def env_creator(config):
    return RabbitForage(config)


def random_policy_pi(agent_id, env):
    return env.action_spaces[agent_id].sample()


if __name__ == "__main__":
    seed = 42
    num_episodes = 3
    cfg = dict(config_env)
    cfg["debug_mode"] = True
    cfg["verbose_episodes"] = True
    np.random.seed(seed)
    env = env_creator(cfg)
    observations, _ = env.reset(seed=seed)

    for space in env.action_spaces.values():
        space.seed(seed)

    if observations:
        first_agent = next(iter(observations))
        print(f"Sample observation shape for {first_agent}: {observations[first_agent].shape}")

    for episode in range(num_episodes):
        terminated = False
        truncated = False
        decisions = 0
        while not terminated and not truncated:
            # only agents at a decision point expect an action
            action_dict = {agent_id: random_policy_pi(agent_id, env) for agent_id in observations}
            decisions += len(action_dict)
            observations, rewards, terminations, truncations, _ = env.step(action_dict)
            terminated = terminations["__all__"]
            truncated = truncations["__all__"]

        print(f"Episode {episode} ended at tick {env.current_step} after {decisions} decisions")
        print(f"  returns: { {a: round(r, 3) for a, r in env.cumulative_rewards.items()} }")
        print(f"  summary: {env.get_population_summary()}")
        observations, _ = env.reset()
