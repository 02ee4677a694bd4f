from http import HTTPStatus
from typing import Any, Dict, List

import requests

from iq.errors import (
    ApplicationNotFoundError,
    MissingLicenseError,
    ParseError,
    ServerCommunicationError,
)
from iq.iq_client import IQClient
from loggers.iq_client_logger import iq_client_logger as logger

INTERNAL_APPLICATION_ID_PATH = "/api/v2/applications"


def resolve_internal_id(client: IQClient, application: str) -> str:
    """
    Look up the internal application id for a public application id.

    GET /api/v2/applications?publicId={application}
    Response: {"applications": [{"id": "..."}, ...]}; the first match wins.
    """
    try:
        resp = client.get(INTERNAL_APPLICATION_ID_PATH, params={"publicId": application})
    except requests.RequestException as e:
        logger.error("Could not reach IQ Server to resolve application %s: %s", application, e)
        raise ServerCommunicationError(
            "There was an error communicating with Nexus IQ Server to get your internal application ID",
            err=e,
        ) from e

    if resp.status_code == HTTPStatus.PAYMENT_REQUIRED:
        logger.error("Error accessing Nexus IQ Server due to product license (status=%s)", resp.status_code)
        raise MissingLicenseError()

    if resp.status_code != HTTPStatus.OK:
        body = resp.text
        logger.error(
            "Error communicating with Nexus IQ Server application endpoint: status_code=%s status=%s body=%s",
            resp.status_code,
            resp.reason,
            body,
        )
        raise ServerCommunicationError(
            "Unable to communicate with Nexus IQ Server",
            status_code=resp.status_code,
            status=resp.reason,
            body=body,
        )

    try:
        payload = resp.json()
    except ValueError as e:
        raise ParseError("failed to unmarshal application response", body=resp.text, err=e) from e

    applications: List[Dict[str, Any]] = []
    if isinstance(payload, dict) and isinstance(payload.get("applications"), list):
        applications = [a for a in payload["applications"] if isinstance(a, dict)]

    if not applications:
        logger.error("Unable to retrieve an internal ID for the specified public application ID: %s", application)
        raise ApplicationNotFoundError(application)

    internal_id = str(applications[0].get("id") or "")
    if not internal_id:
        raise ApplicationNotFoundError(application)

    logger.debug("Retrieved internal ID %s from Nexus IQ Server for %s", internal_id, application)
    return internal_id
