"""
Rabbit Forage RLlib Environment

Rabbits hop around a walled arena foraging three kinds of food. Eaten food is
stored per type and metabolized into energy; a rabbit dies when its energy
drops below zero. When the whole population has died, a new food layout is
generated and every rabbit respawns.

Features:
- Continuous 3D world simulated in fixed ticks (`fixed_delta_time`)
- Ray-cast vector observations, continuous 3D actions (turn, hop delay, hop force)
- Decisions only at grounding events: an agent appears in the observation dict
  when it has landed (or just died); between decisions rewards accumulate
- One episode = one generation of rabbits, ended by the all-dead reset
"""
# external libraries (Ray required)
import gymnasium
from ray.rllib.env.multi_agent_env import MultiAgentEnv
import numpy as np

from rabbitforage.rllib.foraging_rabbits.actions import ActionDecoder, HopScheduler
from rabbitforage.rllib.foraging_rabbits.episode_controller import EpisodeController
from rabbitforage.rllib.foraging_rabbits.kinematics import Arena, RabbitBody, cast_ray
from rabbitforage.rllib.foraging_rabbits.layout import LayoutGenerator, spawn_kinds_from_config
from rabbitforage.rllib.foraging_rabbits.metabolism import MetabolismEngine, load_process_profile
from rabbitforage.rllib.foraging_rabbits.perception import PerceptionEncoder
from rabbitforage.rllib.foraging_rabbits.rabbit_agent import RabbitAgent


class RabbitForage(MultiAgentEnv):
    def __init__(self, config=None):
        super().__init__()
        if config is None:
            raise ValueError("Environment config must be provided explicitly.")
        self.config = config
        self._initialize_from_config()  # import config variables

        self.possible_agents = [f"rabbit_{i}" for i in range(self.n_rabbits)]
        self.agents = []

        self.observation_spaces = {agent_id: self._build_observation_space(agent_id) for agent_id in self.possible_agents}
        self.action_spaces = {agent_id: self._build_action_space(agent_id) for agent_id in self.possible_agents}

        self.rng = np.random.default_rng()
        self._build_world()

    def _initialize_from_config(self):
        config = self.config
        self.debug_mode = config["debug_mode"]
        self.verbose_episodes = config["verbose_episodes"]
        self.verbose_deaths = config["verbose_deaths"]
        self.verbose_feeding = config["verbose_feeding"]

        self.max_steps = config["max_steps"]
        self.fixed_delta_time = config["fixed_delta_time"]
        if self.fixed_delta_time <= 0:
            raise ValueError("fixed_delta_time must be positive")

        self.n_rabbits = config["n_rabbits"]
        if self.n_rabbits < 1:
            raise ValueError("n_rabbits must be at least 1")
        self.agent_radius = config["agent_radius"]

        # Observation settings
        self.max_vision_distance = config["max_vision_distance"]
        self.vision_ray_directions = config["vision_ray_directions"]

        # Action settings
        self.min_hop_velocity = config["min_hop_velocity"]
        self.max_hop_velocity = config["max_hop_velocity"]
        self.min_hop_delay = config["min_hop_delay"]
        self.max_hop_delay = config["max_hop_delay"]
        self.hop_trajectory = config["hop_trajectory"]

        # Fitness settings
        self.consumption_rate = config["consumption_rate"]
        self.starting_energy = config["starting_energy"]
        self.homeostasis_energy_loss = config["homeostasis_energy_loss"]
        self.metabolic_processes = load_process_profile(config["metabolic_processes"])

        # Rewards
        self.consumption_reward = config["consumption_reward"]
        self.proximity_reward = config["proximity_reward"]
        self.proximity_range = config["proximity_range"]

        # Arena and consumables
        self.ground_height = config["ground_height"]
        self.gravity = config["gravity"]
        self.arena_min = config["arena_min"]
        self.arena_max = config["arena_max"]
        self.agent_spawn_min = config["agent_spawn_min"]
        self.agent_spawn_max = config["agent_spawn_max"]
        self.consumable_spawn_min = config["consumable_spawn_min"]
        self.consumable_spawn_max = config["consumable_spawn_max"]
        self.consumable_radius = config["consumable_radius"]
        self.min_distance_between = config["min_distance_between"]
        self.spawn_kinds = spawn_kinds_from_config(config)

    def _build_world(self):
        self.arena = Arena(
            arena_min=self.arena_min,
            arena_max=self.arena_max,
            ground_height=self.ground_height,
            gravity=self.gravity,
        )
        self.layout_generator = LayoutGenerator(
            spawn_min=self.consumable_spawn_min,
            spawn_max=self.consumable_spawn_max,
            spawn_kinds=self.spawn_kinds,
            min_distance_between=self.min_distance_between,
            rng=self.rng,
        )
        self.hop_scheduler = HopScheduler()
        self.perception = PerceptionEncoder(self.vision_ray_directions, self.max_vision_distance)
        self.action_decoder = ActionDecoder(
            self.min_hop_delay, self.max_hop_delay, self.min_hop_velocity, self.max_hop_velocity
        )

        self.rabbits = {}
        for agent_id in self.possible_agents:
            metabolism = MetabolismEngine(
                processes=self.metabolic_processes,
                starting_energy=self.starting_energy,
                homeostasis_energy_loss=self.homeostasis_energy_loss,
                consumption_rate=self.consumption_rate,
            )
            rabbit = RabbitAgent(
                agent_id,
                RabbitBody(radius=self.agent_radius),
                metabolism,
                hop_trajectory=self.hop_trajectory,
                consumption_reward=self.consumption_reward,
                proximity_reward=self.proximity_reward,
                proximity_range=self.proximity_range,
            )
            # the env records the terminal output before the controller may reset the world
            rabbit.subscribe_deceased(self._on_rabbit_deceased)
            rabbit.subscribe_episode_end(self._on_rabbit_episode_end)
            self.rabbits[agent_id] = rabbit

        self.episode_controller = EpisodeController(
            layout_generator=self.layout_generator,
            rabbits=list(self.rabbits.values()),
            arena=self.arena,
            spawn_min=self.agent_spawn_min,
            spawn_max=self.agent_spawn_max,
            hop_scheduler=self.hop_scheduler,
            rng=self.rng,
        )
        self.episode_controller.subscribe_episode_started(self._on_episode_started)

        self.current_step = 0
        self.sim_time = 0.0
        self._awaiting_action = set()
        self._pending_terminal = {}
        self._episode_over = False
        self._fresh_episode_ready = False
        self.cumulative_rewards = {}

    def _reseed(self, seed):
        self.rng = np.random.default_rng(seed)
        self.layout_generator.rng = self.rng
        self.episode_controller.rng = self.rng

    def reset(self, *, seed=None, options=None):
        """
        Start an episode. After the all-dead reset performed inside `step`, the
        freshly generated layout is reused unless a new seed is given.
        """
        if seed is not None:
            self._reseed(seed)
        if seed is not None or not self._fresh_episode_ready:
            self.episode_controller.start_next_episode()

        self.current_step = 0
        self.sim_time = 0.0
        self._awaiting_action.clear()
        self._pending_terminal.clear()
        self._episode_over = False
        self._fresh_episode_ready = False
        self.agents = list(self.possible_agents)
        self.cumulative_rewards = {agent_id: 0.0 for agent_id in self.agents}

        self._advance_until_emission()
        observations = {}
        infos = {}
        for agent_id, rabbit in self.rabbits.items():
            if rabbit.alive and rabbit.take_decision_request():
                observations[agent_id] = self._get_observation(agent_id)
                infos[agent_id] = self._get_info(agent_id)
                self._awaiting_action.add(agent_id)
        return observations, infos

    def step(self, action_dict):
        observations, rewards, terminations, truncations, infos = {}, {}, {}, {}, {}

        # Step 0: check for truncation
        if self.current_step >= self.max_steps:
            return self._truncate_all(observations, rewards, terminations, truncations, infos)

        # Step 1: apply decisions of agents that were waiting for an action
        self._apply_actions(action_dict)

        # Step 2: simulate until some agent lands, dies, or the episode ends
        self._advance_until_emission()

        # Step 3: report deaths (terminal observations recorded at time of death)
        for agent_id, (observation, reward) in self._pending_terminal.items():
            observations[agent_id] = observation
            rewards[agent_id] = reward
            terminations[agent_id] = True
            truncations[agent_id] = False
            infos[agent_id] = {"units_eaten": self.rabbits[agent_id].units_eaten}
            self.cumulative_rewards[agent_id] = self.cumulative_rewards.get(agent_id, 0.0) + reward
            if agent_id in self.agents:
                self.agents.remove(agent_id)
            self._awaiting_action.discard(agent_id)
        self._pending_terminal.clear()

        if self._episode_over:
            self._log(self.verbose_episodes, f"All rabbits deceased after {self.current_step} ticks", "magenta")
            self.agents = []
            terminations["__all__"] = True
            truncations["__all__"] = False
            return observations, rewards, terminations, truncations, infos

        # Step 4: observations for agents at a decision point
        for agent_id in self.agents:
            rabbit = self.rabbits[agent_id]
            if rabbit.take_decision_request():
                reward = rabbit.take_reward()
                observations[agent_id] = self._get_observation(agent_id)
                rewards[agent_id] = reward
                terminations[agent_id] = False
                truncations[agent_id] = False
                infos[agent_id] = self._get_info(agent_id)
                self.cumulative_rewards[agent_id] += reward
                self._awaiting_action.add(agent_id)

        if self.current_step >= self.max_steps:
            return self._truncate_all(observations, rewards, terminations, truncations, infos)

        terminations["__all__"] = False
        truncations["__all__"] = False
        return observations, rewards, terminations, truncations, infos

    def _apply_actions(self, action_dict):
        for agent_id in list(self._awaiting_action):
            rabbit = self.rabbits[agent_id]
            if agent_id not in action_dict:
                # ask again on the next emission
                rabbit.decision_requested = rabbit.alive
                continue
            self._awaiting_action.discard(agent_id)
            if not rabbit.alive:
                continue
            decision = self.action_decoder.decode(action_dict[agent_id])
            rabbit.body.rotate(decision.heading_change_deg)
            self.hop_scheduler.schedule(agent_id, self.sim_time, decision.delay, decision.impulse)

    def _advance_until_emission(self):
        while not self._emission_ready():
            self._tick()

    def _emission_ready(self):
        if self._episode_over or self._pending_terminal:
            return True
        if self.current_step >= self.max_steps:
            return True
        return any(rabbit.alive and rabbit.decision_requested for rabbit in self.rabbits.values())

    def _tick(self):
        dt = self.fixed_delta_time
        self.sim_time += dt
        self.current_step += 1

        # Deferred hops whose delay has elapsed
        for agent_id, hop in self.hop_scheduler.pop_due(self.sim_time):
            rabbit = self.rabbits[agent_id]
            if rabbit.alive:
                rabbit.body.apply_velocity_change(rabbit.hop_velocity_change(hop.impulse))
                rabbit.hops += 1

        # Movement and grounding events
        for rabbit in self.rabbits.values():
            landed = rabbit.body.step(dt, self.arena)
            if landed and rabbit.alive:
                rabbit.on_grounded(self.layout_generator.active_consumables())

        # Eating; exhaustion callbacks shrink the live list, so work on a snapshot
        active_consumables = self.layout_generator.active_consumables()
        for rabbit in self.rabbits.values():
            if not rabbit.alive:
                continue
            rabbit.update_contact(active_consumables, self.consumable_radius)
            if rabbit.is_eating:
                consumable = rabbit.current_consumable
                eaten = rabbit.eat(dt)
                if consumable.exhausted:
                    self._log(
                        self.verbose_feeding,
                        f"{rabbit.agent_id} finished {consumable.consumable_id} ({eaten:.3f} units in last bite)",
                        "green",
                    )

        # Metabolism and deaths; the last death resets the whole world
        for rabbit in [r for r in self.rabbits.values() if r.alive]:
            if self._episode_over:
                break
            rabbit.metabolize(dt)

    def _truncate_all(self, observations, rewards, terminations, truncations, infos):
        for agent_id in self.agents:
            rabbit = self.rabbits[agent_id]
            reward = rabbit.take_reward()
            observations[agent_id] = self._get_observation(agent_id)
            rewards[agent_id] = rewards.get(agent_id, 0.0) + reward
            terminations[agent_id] = False
            truncations[agent_id] = True
            infos[agent_id] = self._get_info(agent_id)
            self.cumulative_rewards[agent_id] += reward
        self._awaiting_action.clear()
        terminations["__all__"] = False
        truncations["__all__"] = True
        return observations, rewards, terminations, truncations, infos

    def _on_rabbit_deceased(self, rabbit):
        self._log(
            self.verbose_deaths,
            f"{rabbit.agent_id} deceased at tick {self.current_step}\n"
            f"ledger: {rabbit.ledger}\nunits eaten: {rabbit.units_eaten:.2f}, hops: {rabbit.hops}",
            "red",
        )
        self.hop_scheduler.cancel(rabbit.agent_id)
        self._pending_terminal[rabbit.agent_id] = (self._get_observation(rabbit.agent_id), rabbit.take_reward())
        self.episode_controller.on_agent_deceased(rabbit)

    def _on_rabbit_episode_end(self, rabbit):
        # a closed episode drops any action the trainer still owes this rabbit
        self._awaiting_action.discard(rabbit.agent_id)

    def _on_episode_started(self, controller):
        self._episode_over = True
        self._fresh_episode_ready = True
        self._log(
            self.verbose_episodes,
            f"Episode {controller.episodes_started} generated\n"
            f"consumables: {len(self.layout_generator.spawned_consumables)} "
            f"(per kind {self.layout_generator.last_quantities})",
            "cyan",
        )

    def _get_observation(self, agent_id):
        rabbit = self.rabbits[agent_id]
        bodies = [(other_id, other.body) for other_id, other in self.rabbits.items()]
        consumables = self.layout_generator.active_consumables()

        def cast(origin, direction, max_distance):
            return cast_ray(
                origin,
                direction,
                max_distance,
                self.arena,
                bodies=bodies,
                consumables=consumables,
                consumable_radius=self.consumable_radius,
                ignore=agent_id,
            )

        return self.perception.observe(rabbit.is_eating, rabbit.ledger.as_list(), rabbit.body, cast)

    def _get_info(self, agent_id):
        rabbit = self.rabbits[agent_id]
        return {
            "energy": float(rabbit.energy),
            "ledger": rabbit.ledger.as_list(),
            "units_eaten": rabbit.units_eaten,
            "is_eating": rabbit.is_eating,
        }

    def _build_observation_space(self, agent_id):
        """
        Build the observation space for a specific agent.
        """
        obs_size = PerceptionEncoder(self.vision_ray_directions, self.max_vision_distance).observation_size
        return gymnasium.spaces.Box(low=-np.inf, high=np.inf, shape=(obs_size,), dtype=np.float32)

    def _build_action_space(self, agent_id):
        """
        Build the action space for a specific agent.
        """
        return gymnasium.spaces.Box(low=-1.0, high=1.0, shape=(3,), dtype=np.float32)

    def _log(self, verbose: bool, message: str, color: str = None):
        """
        Log with sharp 90° box-drawing borders (Unicode), optional color.

        Args:
            verbose (bool): Whether to log this message (per category).
            message (str): Message text (can be multi-line).
            color (str, optional): One of red, green, yellow, blue, magenta, cyan.
        """
        if not getattr(self, "debug_mode", True):
            return
        if not verbose:
            return

        colors = {
            "red": "\033[91m",
            "green": "\033[92m",
            "yellow": "\033[93m",
            "blue": "\033[94m",
            "magenta": "\033[95m",
            "cyan": "\033[96m",
            "white": "\033[97m",
            "reset": "\033[0m",
        }

        prefix = colors.get(color, "")
        suffix = colors["reset"] if color else ""

        lines = message.strip().split("\n")
        max_width = max(len(line) for line in lines)
        border = "─" * (max_width + 2)

        print(f"┌{border}┐")
        for line in lines:
            print(f"│ {prefix}{line.ljust(max_width)}{suffix} │")
        print(f"└{border}┘")

    def get_population_summary(self):
        """Totals over the current episode, e.g. for callbacks and scripts."""
        return {
            "episode": self.episode_controller.episodes_started,
            "alive": sum(1 for r in self.rabbits.values() if r.alive),
            "consumables_left": len(self.layout_generator.spawned_consumables),
            "units_eaten": sum(r.units_eaten for r in self.rabbits.values()),
            "hops": sum(r.hops for r in self.rabbits.values()),
        }


__all__ = ["RabbitForage"]
