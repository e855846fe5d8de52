import click

from srt.core import replication
from srt.core.types import RunOutcome


@click.command()
@click.argument('target_env')
@click.option("-s", "--source-env", required=False, help="Environment to copy from. Defaults to the SOURCE_ENV setting")
@click.option("--source-key", required=False, help="Encryption key of the source environment, if it is encrypted")
@click.option("--target-key", required=False, help="Encryption key of the target environment, if it is encrypted")
@click.option("-w", "--parallel-workers", type=click.IntRange(min=1), required=False,
              help="Tables and partitions processed at the same time (default: PARALLEL_WORKERS setting)")
@click.option("-T", "--unit-timeout", type=click.FloatRange(min=0, min_open=True), required=False,
              help="Seconds after which a single table, partition or constraint step counts as failed")
def replicate(target_env, source_env, source_key, target_key, parallel_workers, unit_timeout):
    """Refresh TARGET_ENV from the source environment.

    Partitions of the target are aligned with the source, every table is
    truncated and reloaded, and demand-mode materialized views are
    refreshed. Failures of single tables are collected into the run report;
    the command exits with status 1 if there were any.

    Examples:

        Refresh the test environment from the configured source:
          srt replicate test-ora

        Refresh from an explicit source with 4 parallel workers:
          srt replicate test-ora --source-env prod-ora --parallel-workers 4

        Refresh an encrypted target:
          srt replicate test-ora --source-env prod-ora --target-key mypassword
    """
    result = replication.replicate(
        target_env,
        source_env=source_env,
        source_encryption_key=source_key,
        target_encryption_key=target_key,
        parallel_workers=parallel_workers,
        unit_timeout=unit_timeout,
    )

    if not result.success:
        raise click.ClickException(result.message)

    print(result.message)
    if result.data is not None and result.data.outcome == RunOutcome.PARTIAL_FAILURE:
        raise click.exceptions.Exit(1)
