"""Client for the presigned URL endpoints of the remote platform."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

import requests
from dacite import from_dict
from dacite.exceptions import DaciteError

from .cache.level import AggregationLevel, parse_level

log = logging.getLogger("api")


class ApiError(RuntimeError):
    """Error emitted when the remote API request does not succeed."""


@dataclass(frozen=True, kw_only=True)
class PresignedUrlEntry:
    """
    Entry returned by the presigned URL endpoint for a single partition.

    Field names mirror the JSON payload.

    Attributes:
        path: the remote partition path (starts with `result-db/`)
        presignedUrl: short-lived URL to GET the partition
    """

    path: str
    presignedUrl: str  # noqa: N815


class PresignedUrlProvider(Protocol):
    """
    Represent the possibility of obtaining presigned URLs for the
    partitions of an experiment at a given level.

    Methods:
        presigned_urls: return the entries for the experiment and level.
    """

    def presigned_urls(
        self,
        experiment_uuid: str,
        level: AggregationLevel,
    ) -> list[PresignedUrlEntry]: ...


class PlatformApiClient:
    """
    Minimal HTTP client for the experiments results API.

    This class implements the PresignedUrlProvider protocol. Obtaining
    the bearer token (i.e., the login flow) is the caller's job.
    """

    def __init__(
        self,
        *,
        endpoint: str,
        id_token: str,
        session: requests.Session | None = None,
    ) -> None:
        self.endpoint = endpoint.rstrip("/")
        self.id_token = id_token
        self.session = session if session is not None else requests.Session()

    def presigned_urls_endpoint(self, experiment_uuid: str, level: AggregationLevel | str) -> str:
        """Return the URL listing the presigned URLs of an experiment at a level."""
        level = parse_level(level)
        base = f"{self.endpoint}/v1/experiments/experiment/{experiment_uuid}/results"
        if level.is_sample_rollup:
            return f"{base}/sampleRollup/{level.remote_name}/parquets/presignedUrls"
        return f"{base}/{level.remote_name}/parquets/presignedUrls"

    def presigned_urls(
        self,
        experiment_uuid: str,
        level: AggregationLevel | str,
    ) -> list[PresignedUrlEntry]:
        """
        Return the presigned URLs for all the partitions of an experiment.

        Raises:
            ApiError: the request fails, the response is malformed, or
                there are no partitions for the experiment.
        """
        url = self.presigned_urls_endpoint(experiment_uuid, level)
        log.debug("GET %s", url)
        try:
            resp = self.session.get(url, headers={"Authorization": f"Bearer {self.id_token}"})
            resp.raise_for_status()
            payload = resp.json()
        except (requests.RequestException, ValueError) as exc:
            raise ApiError(
                f"error retrieving data for experiment (uuid: {experiment_uuid}): {exc}"
            ) from exc

        if not isinstance(payload, list) or len(payload) < 1:
            raise ApiError(
                f"could not retrieve presigned url for experiment (uuid: {experiment_uuid})"
            )

        if not all(isinstance(item, dict) for item in payload):
            raise ApiError(
                f"malformed presigned url for experiment (uuid: {experiment_uuid}): "
                "expected a list of objects"
            )

        try:
            return [from_dict(PresignedUrlEntry, item) for item in payload]
        except DaciteError as exc:
            raise ApiError(
                f"malformed presigned url for experiment (uuid: {experiment_uuid}): {exc}"
            ) from exc
