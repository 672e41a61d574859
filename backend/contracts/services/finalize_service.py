import logging
from datetime import timedelta

from celery import shared_task
from celery.exceptions import SoftTimeLimitExceeded
from django.conf import settings
from django.db import transaction
from django.db.models import Q
from django.utils import timezone
from django.utils.module_loading import import_string

from ..models import FinalizeTask

logger = logging.getLogger(__name__)


class FinalizeService:
    """
    Best-effort post-commit finalize action for executed contracts.

    Each request is recorded as a FinalizeTask row and delivered by a
    Celery task once the signing transaction commits. Failures are
    logged and retried; they never reach the signer.

    A delivery first claims its row (status -> running) with a
    conditional update keyed on the attempt number it was queued for,
    so a duplicate or stale message finds nothing to claim and exits.
    """

    # Maximum retry attempts
    MAX_RETRIES = 3

    # Retry delays (in seconds)
    RETRY_DELAYS = [60, 300, 900]  # 1 min, 5 min, 15 min

    @staticmethod
    def get_finalizer():
        """Resolve the finalize collaborator from settings.CONTRACT_FINALIZER."""
        return import_string(settings.CONTRACT_FINALIZER)

    @staticmethod
    def lease_seconds():
        """How long a claimed row stays running before the sweep may reclaim it."""
        return settings.CONTRACT_FINALIZE_TIMEOUT + 15

    @staticmethod
    def schedule(contract_id, reason='executed'):
        """
        Record a finalize request and queue it after commit.

        Args:
            contract_id: Contract primary key
            reason: 'executed' for first execution, 'resigned' for a refresh

        Returns:
            FinalizeTask: the outbox row
        """
        task = FinalizeTask.objects.create(contract_id=contract_id, reason=reason)
        transaction.on_commit(lambda: FinalizeService.enqueue(task.id))
        return task

    @staticmethod
    def enqueue(task_id, retry_attempt=0, countdown=None):
        """Hand a finalize task to Celery. Broker failures are logged only."""
        timeout = settings.CONTRACT_FINALIZE_TIMEOUT
        try:
            finalize_executed_contract.apply_async(
                args=[task_id, retry_attempt],
                countdown=countdown,
                soft_time_limit=timeout,
                time_limit=timeout + 15,
            )
        except Exception:
            logger.exception("Could not queue finalize task %s; left for the pending sweep", task_id)

    @staticmethod
    def claim(task_id, retry_attempt, now=None):
        """
        Mark a row running if it is waiting for this attempt.

        Returns:
            bool: True if this caller owns the delivery
        """
        now = now or timezone.now()
        claimable = (
            Q(status__in=['pending', 'retrying'])
            | Q(status='running', next_retry_at__lte=now)
        )
        return bool(
            FinalizeTask.objects.filter(
                claimable,
                pk=task_id,
                attempt_count=retry_attempt,
            ).update(
                status='running',
                next_retry_at=now + timedelta(seconds=FinalizeService.lease_seconds()),
            )
        )

    @staticmethod
    def run(task_id, retry_attempt=0):
        """
        Invoke the finalize collaborator for one outbox row.

        Args:
            task_id: FinalizeTask id
            retry_attempt: current retry attempt number
        """
        if not FinalizeService.claim(task_id, retry_attempt):
            logger.info(f"FinalizeTask {task_id} (attempt {retry_attempt}) not claimable; skipping")
            return

        task = FinalizeTask.objects.get(id=task_id)

        try:
            finalizer = FinalizeService.get_finalizer()
            finalizer(task.contract_id)
        except SoftTimeLimitExceeded:
            error_msg = f"Timed out after {settings.CONTRACT_FINALIZE_TIMEOUT}s"
        except Exception as e:
            error_msg = str(e) or e.__class__.__name__
        else:
            task.status = 'delivered'
            task.attempt_count = retry_attempt + 1
            task.completed_at = timezone.now()
            task.next_retry_at = None
            task.save()
            logger.info(f"Finalized contract {task.contract_id} ({task.reason})")
            return

        logger.warning(f"Finalize failed for contract {task.contract_id}: {error_msg}")

        task.last_error = error_msg
        task.attempt_count = retry_attempt + 1

        if retry_attempt < FinalizeService.MAX_RETRIES:
            retry_delay = FinalizeService.RETRY_DELAYS[retry_attempt]
            task.status = 'retrying'
            task.next_retry_at = timezone.now() + timedelta(seconds=retry_delay)
            task.save()

            FinalizeService.enqueue(task.id, retry_attempt + 1, countdown=retry_delay)
            logger.info(f"Retrying finalize for contract {task.contract_id} in {retry_delay}s")
        else:
            task.status = 'failed'
            task.next_retry_at = None
            task.save()
            logger.error(
                f"Finalize for contract {task.contract_id} failed after "
                f"{FinalizeService.MAX_RETRIES} retries"
            )


@shared_task(name='contracts.finalize_executed_contract')
def finalize_executed_contract(task_id: int, retry_attempt: int = 0):
    """Celery task delivering one finalize request."""
    FinalizeService.run(task_id, retry_attempt=retry_attempt)


@shared_task(name='contracts.retry_pending_finalize_tasks')
def retry_pending_finalize_tasks(older_than_seconds: int = 300):
    """
    Re-queue finalize requests whose message was lost: pending rows never
    picked up, retries that could not be queued, and runs whose worker died.
    """
    now = timezone.now()
    cutoff = now - timedelta(seconds=older_than_seconds)
    stale = FinalizeTask.objects.filter(
        Q(status='pending', created_at__lt=cutoff)
        | Q(status__in=['retrying', 'running'], next_retry_at__lte=now)
    )
    count = 0
    for task in stale:
        FinalizeService.enqueue(task.id, task.attempt_count)
        count += 1
    if count:
        logger.info(f"Re-queued {count} stalled finalize task(s)")
    return count
