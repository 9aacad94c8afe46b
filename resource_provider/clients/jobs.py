# Copyright (c) 2025-2026 OptimNow. All Rights Reserved.
# Licensed under the Apache License, Version 2.0.
# See LICENSE file in the project root for full license information.

"""Polling of long-running remote jobs until they reach a terminal state."""

import logging
import time
from typing import Callable

from ..exceptions import JobFailedError, JobTimeoutError
from ..models.job import AsyncJob, JobState
from ..utils.path_search import search_as
from .http_client import RemoteClient

logger = logging.getLogger(__name__)


class JobPoller:
    """
    Waits on an asynchronous job by querying its status endpoint.

    Polling always terminates: the job completes, the job fails
    (:class:`JobFailedError`) or the timeout elapses
    (:class:`JobTimeoutError`).
    """

    def __init__(
        self,
        client: RemoteClient,
        path: str = "v3/{project_id}/jobs",
        id_param: str = "id",
        status_path: str = "job.status",
        reason_path: str = "job.fail_reason",
        success_states: tuple[str, ...] = ("Completed",),
        failure_states: tuple[str, ...] = ("Failed",),
        interval_seconds: float = 10.0,
        timeout_seconds: float = 1800.0,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the poller.

        Args:
            client: Client for the service that owns the job
            path: Job status path; the job ID goes in the ``id_param`` query
            id_param: Query parameter carrying the job ID
            status_path: Lookup path of the status string in the response
            reason_path: Lookup path of the failure reason
            success_states: Status strings meaning success
            failure_states: Status strings meaning failure
            interval_seconds: Delay between polls
            timeout_seconds: Total time allowed
            sleep: Sleep function (injected by tests)
            clock: Monotonic clock (injected by tests)
        """
        self.client = client
        self.path = path
        self.id_param = id_param
        self.status_path = status_path
        self.reason_path = reason_path
        self.success_states = success_states
        self.failure_states = failure_states
        self.interval_seconds = interval_seconds
        self.timeout_seconds = timeout_seconds
        self._sleep = sleep
        self._clock = clock

    def query(self, job_id: str) -> AsyncJob:
        """Issue one status query and classify the result."""
        response = self.client.get(self.path, params={self.id_param: job_id})
        status = search_as(self.status_path, response, str)
        reason = search_as(self.reason_path, response, str)

        if status in self.success_states:
            state = JobState.COMPLETED
        elif status in self.failure_states:
            state = JobState.FAILED
        else:
            state = JobState.RUNNING

        return AsyncJob(job_id=job_id, state=state, remote_status=status, fail_reason=reason)

    def wait(self, job_id: str) -> AsyncJob:
        """
        Block until the job completes.

        Args:
            job_id: Remote job identifier

        Returns:
            The completed job

        Raises:
            JobFailedError: If the job ends in a failure state
            JobTimeoutError: If the job is still running after the timeout
        """
        started = self._clock()
        polls = 0
        last_status = None

        logger.info(f"Waiting for job {job_id} (timeout {self.timeout_seconds}s)")
        while True:
            job = self.query(job_id)
            polls += 1
            last_status = job.remote_status
            elapsed = self._clock() - started

            if job.state == JobState.COMPLETED:
                logger.info(f"Job {job_id} completed after {polls} poll(s)")
                return job.model_copy(update={"polls": polls, "elapsed_seconds": elapsed})

            if job.state == JobState.FAILED:
                raise JobFailedError(job_id, job.fail_reason)

            if elapsed + self.interval_seconds > self.timeout_seconds:
                raise JobTimeoutError(job_id, self.timeout_seconds, last_status)

            logger.debug(f"Job {job_id} status {last_status}, polling again")
            self._sleep(self.interval_seconds)
