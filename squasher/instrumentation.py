from lib.metrics import restore_run_count
from lib.metrics import squash_run_count
from lib.metrics import squash_step_failure_count


def log_step_started(logger, step, dry_run=False):
    prefix = "[dry run] " if dry_run else ""
    logger.info(f"{prefix}Step {step} started")


def log_step_succeeded(logger, step, duration):
    logger.info(f"Step {step} finished in {duration:.2f}s", extra={"step": step, "duration": duration})


def _log_recovery(logger, layout, history_changed):
    if layout is None:
        return
    logger.error("Backups for this run are in %s", layout.run_dir)
    if history_changed:
        logger.error(
            "The migration history is no longer intact. Restore with: squash_migrations.py restore %s",
            layout.run_dir,
        )


def log_step_failed(logger, step, error, layout, history_changed):
    squash_step_failure_count.labels(step=step).inc()
    logger.error(f"Step {step} failed: {error}", extra={"step": step, "error": str(error)})
    _log_recovery(logger, layout, history_changed)


def log_squash_succeeded(logger, layout, squashed_count):
    squash_run_count.labels(outcome="success").inc()
    logger.info(f"Squashed {squashed_count} migrations into {layout.baseline_name}. Backups are in {layout.run_dir}")


def log_squash_failed(logger):
    squash_run_count.labels(outcome="failure").inc()
    logger.error("Migration squash failed")


def log_squash_interrupted(logger, step, layout=None, history_changed=False, during=False):
    squash_run_count.labels(outcome="interrupted").inc()
    position = "during" if during else "before"
    logger.warning(f"Migration squash interrupted {position} step {step}")
    _log_recovery(logger, layout, history_changed)


def log_restore_succeeded(logger, layout):
    restore_run_count.labels(outcome="success").inc()
    logger.info(f"Restored backup {layout.run_dir}")


def log_restore_failed(logger, layout, error):
    restore_run_count.labels(outcome="failure").inc()
    logger.error(f"Restoring backup {layout.run_dir} failed: {error}")
