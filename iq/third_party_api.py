from http import HTTPStatus

import requests

from iq.errors import EmptyHandleError, ParseError, ServerCommunicationError
from iq.iq_client import IQClient
from loggers.iq_client_logger import iq_client_logger as logger

THIRD_PARTY_API_PATH = "/api/v2/scan/applications/{internal_id}/sources/nancy"


def third_party_api_path(internal_id: str) -> str:
    return THIRD_PARTY_API_PATH.format(internal_id=internal_id)


def submit_sbom(client: IQClient, sbom: str, internal_id: str, stage: str) -> str:
    """
    Submit an SBOM to the IQ Server Third Party API and return the status URL to poll.

    POST /api/v2/scan/applications/{internalID}/sources/nancy?stageId={stage}
    IQ Server answers 202 Accepted with {"statusUrl": "..."}.
    """
    path = third_party_api_path(internal_id)
    logger.debug("Submitting SBOM to Third Party API: url=%s stage=%s", client.url(path), stage)

    try:
        resp = client.post(
            path,
            data=sbom,
            params={"stageId": stage},
            headers={"Content-Type": "application/xml"},
        )
    except requests.RequestException as e:
        logger.error("There was an issue communicating with the Nexus IQ Third Party API: %s", e)
        raise ServerCommunicationError(
            "There was an issue communicating with the Nexus IQ Third Party API",
            err=e,
        ) from e

    if resp.status_code != HTTPStatus.ACCEPTED:
        body = resp.text
        logger.error(
            "Request not accepted: status_code=%s status=%s body=%s",
            resp.status_code,
            resp.reason,
            body,
        )
        raise ServerCommunicationError(
            "There was an issue submitting your sbom to the Nexus IQ Third Party API",
            status_code=resp.status_code,
            status=resp.reason,
            body=body,
        )

    logger.info("Request accepted: %s", resp.text)
    try:
        payload = resp.json()
    except ValueError as e:
        raise ParseError("Could not unmarshal response from IQ server", body=resp.text, err=e) from e

    status_url = ""
    if isinstance(payload, dict):
        status_url = str(payload.get("statusUrl") or "").strip()

    if not status_url:
        logger.error("StatusURL not obtained from Third Party API")
        raise EmptyHandleError("There was an issue obtaining a StatusURL")

    return status_url
