"""
This script trains the rabbit foraging environment with PPO using Ray RLlib new API stack.
Rabbits hop around an arena, eat three kinds of food and convert it into energy.
All rabbits share one policy; an episode lasts until every rabbit has died.
"""
from rabbitforage.rllib.foraging_rabbits.rabbit_forage_rllib_env import RabbitForage
from rabbitforage.rllib.foraging_rabbits.config.config_env_rabbit_forage import config_env
from rabbitforage.rllib.foraging_rabbits.config.config_ppo_cpu import config_ppo
from rabbitforage.rllib.foraging_rabbits.utils.episode_return_callback import EpisodeReturn
from rabbitforage.rllib.foraging_rabbits.utils.networks import build_multi_module_spec

import ray
from ray.rllib.algorithms.ppo import PPOConfig
from ray.tune.registry import register_env
from ray.tune import Tuner, RunConfig, CheckpointConfig
from datetime import datetime
from pathlib import Path
import json


def env_creator(config):
    return RabbitForage(config)


def policy_mapping_fn(agent_id, *args, **kwargs):
    # all rabbits share one brain
    return "rabbit_policy"


# --- Main training setup ---

if __name__ == "__main__":
    ray.shutdown()
    ray.init(log_to_driver=True, ignore_reinit_error=True)

    register_env("RabbitForage", env_creator)

    ray_results_dir = "~/ray_results/rabbit_forage/"
    ray_results_path = Path(ray_results_dir).expanduser()
    timestamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
    experiment_name = f"PPO_RABBIT_FORAGE_{timestamp}"
    experiment_path = ray_results_path / experiment_name
    experiment_path.mkdir(parents=True, exist_ok=True)

    config_metadata = {
        "config_env": config_env,
        "config_ppo": config_ppo,
    }
    with open(experiment_path / "run_config.json", "w") as f:
        json.dump(config_metadata, f, indent=4)

    sample_env = env_creator(config=config_env)
    first_agent = sample_env.possible_agents[0]
    obs_space = sample_env.observation_spaces[first_agent]
    act_space = sample_env.action_spaces[first_agent]

    multi_module_spec = build_multi_module_spec({"rabbit_policy": obs_space}, {"rabbit_policy": act_space})
    policies = {"rabbit_policy": (None, obs_space, act_space, {})}

    ppo_config = (
        PPOConfig()
        .environment(env="RabbitForage", env_config=config_env)
        .framework("torch")
        .multi_agent(
            policies=policies,
            policy_mapping_fn=policy_mapping_fn,
        )
        .training(
            train_batch_size_per_learner=config_ppo["train_batch_size_per_learner"],
            minibatch_size=config_ppo["minibatch_size"],
            num_epochs=config_ppo["num_epochs"],
            gamma=config_ppo["gamma"],
            lr=config_ppo["lr"],
            lambda_=config_ppo["lambda_"],
            entropy_coeff=config_ppo["entropy_coeff"],
            vf_loss_coeff=config_ppo["vf_loss_coeff"],
            clip_param=config_ppo["clip_param"],
            kl_coeff=config_ppo["kl_coeff"],
            kl_target=config_ppo["kl_target"],
        )
        .rl_module(rl_module_spec=multi_module_spec)
        .learners(
            num_gpus_per_learner=config_ppo["num_gpus_per_learner"],
            num_learners=config_ppo["num_learners"],
        )
        .env_runners(
            num_env_runners=config_ppo["num_env_runners"],
            num_envs_per_env_runner=config_ppo["num_envs_per_env_runner"],
            rollout_fragment_length=config_ppo["rollout_fragment_length"],
            sample_timeout_s=config_ppo["sample_timeout_s"],
            num_cpus_per_env_runner=config_ppo["num_cpus_per_env_runner"],
        )
        .resources(
            num_cpus_for_main_process=config_ppo["num_cpus_for_main_process"],
        )
        .callbacks(EpisodeReturn)
    )

    max_iters = config_ppo["max_iters"]
    checkpoint_every = 10
    del sample_env

    tuner = Tuner(
        ppo_config.algo_class,
        param_space=ppo_config,
        run_config=RunConfig(
            name=experiment_name,
            storage_path=str(ray_results_path),
            stop={"training_iteration": max_iters},
            checkpoint_config=CheckpointConfig(
                num_to_keep=100,
                checkpoint_frequency=checkpoint_every,
                checkpoint_at_end=True,
            ),
        ),
    )

    result = tuner.fit()
    ray.shutdown()
