"""REST clients for the external election services.

The backend is the only authority on eligibility and vote recording; these
clients translate its JSON into schema models and its failures into the
exceptions below. No call is retried.
"""
import logging
from typing import List, Optional
from urllib.parse import quote

import requests
from pydantic import ValidationError

from schemas import Candidate, Election, ElectionSummary, VoteCastRequest, VoteResult, VoterProfile

logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {
    'Content-Type': 'application/json',
    'Accept': 'application/json',
}


class BackendError(Exception):
    """Network failure or a response the station cannot use"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class VoterNotFound(BackendError):
    """Credentials did not match a registered voter"""


class VoteRejected(BackendError):
    """The vote service refused the ballot (e.g. already voted)"""


def error_message(response: requests.Response) -> str:
    """Best human-readable message carried by a failed response"""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for key in ('message', 'detail', 'error'):
            if body.get(key):
                return str(body[key])
    text = (response.text or '').strip()
    return text or f"HTTP {response.status_code}"


def _path_id(value) -> str:
    return quote(str(value), safe='')


class _RestClient:
    def __init__(self, base_url: str, timeout: float = 30, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.http = session or requests.Session()

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        url = f"{self.base_url}{path}"
        try:
            return self.http.request(method, url, headers=DEFAULT_HEADERS, timeout=self.timeout, **kwargs)
        except requests.exceptions.RequestException as e:
            logger.error(f"{method} {url} failed: {e}")
            raise BackendError(f"Could not reach the election service: {e}") from e

    def _json(self, response: requests.Response):
        if not response.ok:
            raise BackendError(error_message(response), response.status_code)
        try:
            return response.json()
        except ValueError as e:
            raise BackendError("Election service returned an invalid response", response.status_code) from e

    @staticmethod
    def _unwrap(payload):
        # Services answer either with a bare body or a {success, message, data} envelope
        if isinstance(payload, dict) and 'success' in payload:
            if not payload['success']:
                raise BackendError(payload.get('message') or 'Request was not successful')
            return payload.get('data')
        return payload


class BackendClient(_RestClient):
    """Voter, election, candidate and vote endpoints of the vote service"""

    def validate_voter(self, national_id: str, password: str) -> VoterProfile:
        response = self._request(
            'POST', '/voters/validate',
            json={'nationalId': national_id, 'password': password},
        )
        if response.status_code in (401, 404):
            raise VoterNotFound(error_message(response), response.status_code)
        try:
            data = self._unwrap(self._json(response))
        except BackendError as e:
            if e.status_code is None:
                # success: false is the service's "no such voter"
                raise VoterNotFound(e.message) from e
            raise
        if not data:
            raise VoterNotFound("Voter not found")
        try:
            return VoterProfile.model_validate(data)
        except ValidationError as e:
            raise BackendError("Voter record from the election service is malformed") from e

    def get_active_elections(self) -> List[Election]:
        data = self._unwrap(self._json(self._request('GET', '/elections/active'))) or []
        try:
            return [Election.model_validate(item) for item in data]
        except (ValidationError, TypeError) as e:
            raise BackendError("Election list from the election service is malformed") from e

    def get_candidates(self, election_id: str) -> List[Candidate]:
        """Active candidates in the order the service lists them"""
        path = f"/candidates/election/{_path_id(election_id)}"
        data = self._unwrap(self._json(self._request('GET', path))) or []
        try:
            candidates = [Candidate.model_validate(item) for item in data]
        except (ValidationError, TypeError) as e:
            raise BackendError("Candidate list from the election service is malformed") from e
        return [c for c in candidates if c.is_active]

    def cast_vote(self, vote: VoteCastRequest) -> VoteResult:
        response = self._request('POST', '/votes/cast', json=vote.to_payload())
        if not response.ok:
            message = error_message(response)
            logger.warning(f"Vote rejected for voter {vote.voter_id}: {response.status_code} {message}")
            raise VoteRejected(message, response.status_code)

        if response.status_code == 201 and not response.content:
            return VoteResult(success=True)
        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}
        try:
            result = VoteResult.model_validate(body)
        except ValidationError as e:
            raise BackendError("Vote service returned an invalid response", response.status_code) from e
        if not result.success:
            raise VoteRejected(result.message or 'Vote was not recorded', response.status_code)
        return result


class ResultsClient(_RestClient):
    """Read-only access to the results service"""

    def get_election_summary(self, election_id: str) -> ElectionSummary:
        path = f"/election/{_path_id(election_id)}/summary"
        data = self._unwrap(self._json(self._request('GET', path)))
        try:
            return ElectionSummary.model_validate(data)
        except ValidationError as e:
            raise BackendError("Election summary from the results service is malformed") from e
