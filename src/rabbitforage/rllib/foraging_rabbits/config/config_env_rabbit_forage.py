config_env = {
    "max_steps": 50000,  # simulation ticks before truncation
    "fixed_delta_time": 0.02,
    # Rabbits
    "n_rabbits": 4,
    "agent_radius": 0.25,
    # Observation settings
    "max_vision_distance": 10.0,
    "vision_ray_directions": [
        [0.0, -0.1, 1.0],
        [0.5, -0.1, 1.0],
        [-0.5, -0.1, 1.0],
        [1.0, -0.1, 0.5],
        [-1.0, -0.1, 0.5],
        [0.0, -1.0, 1.0],
        [0.0, 0.0, -1.0],
    ],
    # Action settings
    "min_hop_velocity": 1.0,
    "max_hop_velocity": 2.0,
    "min_hop_delay": 1.0,
    "max_hop_delay": 2.0,
    "hop_trajectory": [0.0, 1.0, 1.0],  # local direction of the hop impulse
    # Fitness settings
    "consumption_rate": 1.0,  # food units eaten per second
    "starting_energy": 50.0,
    "homeostasis_energy_loss": 1.0,  # energy lost per second
    "metabolic_processes": [
        {"energy_produced": 3.0, "components_required": ["type_a"], "quantities_required": [0.5]},
        {"energy_produced": 2.0, "components_required": ["type_b"], "quantities_required": [0.5]},
        {"energy_produced": 6.0, "components_required": ["type_a", "type_b"], "quantities_required": [0.5, 0.5]},
        {"energy_produced": -4.0, "components_required": ["type_c"], "quantities_required": [0.5]},
    ],
    # Rewards
    "consumption_reward": 0.1,  # per second spent eating
    "proximity_reward": 0.1,
    "proximity_range": 1.0,
    # Arena
    "ground_height": 0.0,
    "gravity": 9.81,
    "arena_min": [-10.0, 0.0, -10.0],
    "arena_max": [10.0, 5.0, 10.0],
    "agent_spawn_min": [-8.0, 0.25, -8.0],
    "agent_spawn_max": [8.0, 0.25, 8.0],
    # Consumables
    "consumable_spawn_min": [-9.0, 0.3, -9.0],
    "consumable_spawn_max": [9.0, 0.3, 9.0],
    "consumable_radius": 0.3,
    "spawnable_kinds": ["type_a", "type_b", "type_c"],
    "spawn_quantity_ranges": [[8, 12], [8, 12], [3, 5]],
    "spawn_unit_ranges": [[1.0, 1.5], [1.0, 1.5], [1.0, 1.5]],
    "min_distance_between": 1.0,
    # Logging
    "debug_mode": False,
    "verbose_episodes": False,
    "verbose_deaths": False,
    "verbose_feeding": False,
}
