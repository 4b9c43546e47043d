from ray.rllib.callbacks.callbacks import RLlibCallback
from ray.rllib.utils.metrics.metrics_logger import MetricsLogger
import time
import numpy as np


class EpisodeReturn(RLlibCallback):
    def __init__(self):
        super().__init__()
        self.overall_sum_of_rewards = 0.0
        self.num_episodes = 0
        self.start_time = time.time()
        self.last_iteration_time = self.start_time

    def on_episode_end(self, *, episode, metrics_logger: MetricsLogger, **kwargs):
        """
        Called at the end of each episode (one generation of rabbits).
        Logs the total return and the spread of per-rabbit returns.
        """
        self.num_episodes += 1
        episode_return = episode.get_return()
        episode_length = getattr(episode, "length", 0)
        self.overall_sum_of_rewards += episode_return

        rabbit_totals = [sum(rewards) for agent_id, rewards in episode.get_rewards().items() if "rabbit" in agent_id]

        print(
            f"Episode {self.num_episodes}: Length: {episode_length} | R={episode_return:.2f} | Global SUM={self.overall_sum_of_rewards:.2f}"
        )
        print(f"  - Rabbits: Total = {sum(rabbit_totals):.2f} over {len(rabbit_totals)} rabbits")

        if rabbit_totals:
            p25, p50, p75 = np.percentile(rabbit_totals, [25, 50, 75])
            metrics_logger.log_value("rabbit_episode_return_p25", float(p25))
            metrics_logger.log_value("rabbit_episode_return_p50", float(p50))
            metrics_logger.log_value("rabbit_episode_return_p75", float(p75))

    def on_train_result(self, *, result, **kwargs):
        now = time.time()
        total_elapsed = now - self.start_time
        iter_num = result.get("training_iteration", 1)
        iter_time = now - self.last_iteration_time
        self.last_iteration_time = now

        result["timing/iter_minutes"] = iter_time / 60.0
        result["timing/avg_minutes_per_iter"] = total_elapsed / 60.0 / iter_num
        result["timing/total_hours_elapsed"] = total_elapsed / 3600.0
