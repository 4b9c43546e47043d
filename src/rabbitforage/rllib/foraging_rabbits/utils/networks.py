from ray.rllib.core.rl_module import RLModuleSpec
from ray.rllib.core.rl_module.multi_rl_module import MultiRLModuleSpec
from ray.rllib.algorithms.ppo.torch.default_ppo_torch_rl_module import DefaultPPOTorchRLModule


def build_module_spec(obs_space, act_space, policy_name: str = None, preset: str = "auto", override_model_config: dict = None):
    """
    Build an RLModuleSpec for flat ray-cast observations and continuous hop actions.
    "auto" sizes the MLP from the observation length, "tiny" is a small debug net.
    """
    if len(obs_space.shape) != 1:
        raise ValueError(f"Expected a flat observation vector, got shape {obs_space.shape}")
    obs_size = obs_space.shape[0]

    if obs_size > 64:
        auto_fcnet_hiddens = [256, 256]
        head_note = "wide"
    else:
        auto_fcnet_hiddens = [128, 128]
        head_note = "standard"

    if override_model_config is not None:
        model_config = dict(override_model_config)
        mode_note = "override_model_config"
    elif preset == "tiny":
        model_config = {
            "fcnet_hiddens": [64],
            "fcnet_activation": "tanh",
            "vf_share_layers": True,
        }
        mode_note = "preset=tiny"
    else:
        model_config = {
            "fcnet_hiddens": auto_fcnet_hiddens,
            "fcnet_activation": "tanh",
        }
        mode_note = f"preset=auto (head={head_note})"

    if policy_name is not None:
        print(f"[MODEL] {policy_name} → obs={obs_size}, actions={act_space.shape}, {mode_note}")
        print(f"[MODEL] {policy_name} → model_config={model_config}")

    return RLModuleSpec(
        module_class=DefaultPPOTorchRLModule,
        observation_space=obs_space,
        action_space=act_space,
        inference_only=False,
        model_config=model_config,
    )


def build_multi_module_spec(
    obs_spaces_by_policy: dict,
    act_spaces_by_policy: dict,
    preset: str = "auto",
    override_model_config: dict = None,
) -> MultiRLModuleSpec:
    obs_keys = set(obs_spaces_by_policy.keys())
    act_keys = set(act_spaces_by_policy.keys())
    if obs_keys != act_keys:
        missing_in_act = sorted(obs_keys - act_keys)
        missing_in_obs = sorted(act_keys - obs_keys)
        raise ValueError(f"Policy key mismatch. Missing in act: {missing_in_act}; Missing in obs: {missing_in_obs}")

    rl_module_specs = {}
    for policy_id in obs_keys:
        rl_module_specs[policy_id] = build_module_spec(
            obs_spaces_by_policy[policy_id],
            act_spaces_by_policy[policy_id],
            policy_name=policy_id,
            preset=preset,
            override_model_config=override_model_config,
        )

    return MultiRLModuleSpec(rl_module_specs=rl_module_specs)
