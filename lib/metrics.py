from prometheus_client import Counter
from prometheus_client import Summary

squash_step_duration = Summary(
    "squash_step_duration_seconds", "Time spent running each step of a migration squash", ["step"]
)
squash_step_failure_count = Counter(
    "squash_step_failure_count", "The total amount of failed migration squash steps", ["step"]
)
squash_run_count = Counter("squash_run_count", "The total amount of migration squash runs", ["outcome"])
restore_run_count = Counter("squash_restore_run_count", "The total amount of backup restores", ["outcome"])
