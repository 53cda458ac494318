"""Polling station voting flow.

One voter at a time moves through four screens:

    validation -> voting -> confirmation -> success

The backend decides eligibility and records the vote; this module only keeps
track of where the voter is and refuses transitions that would let a ballot
be built or marked cast out of order. State is serialised into the Flask
session between requests.
"""
import logging
import threading
import uuid
from collections import OrderedDict
from enum import Enum
from typing import Iterator, List, Optional

from schemas import Candidate, Election, VoteCastRequest, VoterProfile

logger = logging.getLogger(__name__)


class Screen(str, Enum):
    VALIDATION = "validation"
    VOTING = "voting"
    CONFIRMATION = "confirmation"
    SUCCESS = "success"


class FlowError(Exception):
    """Raised when an action does not fit the current screen"""


class VotingSession:
    def __init__(self, flow_id: Optional[str] = None):
        self.flow_id = flow_id or uuid.uuid4().hex
        self.current_screen = Screen.VALIDATION
        self.voter: Optional[VoterProfile] = None
        self.election_id: Optional[str] = None
        self.selected_candidate: Optional[Candidate] = None
        self.vote_submitted = False
        self.error: Optional[str] = None

    def _require_screen(self, *screens: Screen):
        if self.current_screen not in screens:
            allowed = ', '.join(s.value for s in screens)
            raise FlowError(f"Action not allowed on '{self.current_screen.value}' screen (expected {allowed})")

    def _move(self, screen: Screen):
        logger.info(f"Flow {self.flow_id}: {self.current_screen.value} -> {screen.value}")
        self.current_screen = screen

    # --- validation ---

    def record_validation(self, profile: Optional[VoterProfile]):
        """Store the verdict of a lookup. Never advances the screen."""
        self._require_screen(Screen.VALIDATION)
        self.voter = profile
        self.error = None

    def proceed_to_voting(self, elections: List[Election]):
        self._require_screen(Screen.VALIDATION)
        if self.voter is None:
            raise FlowError("No validated voter")
        if not self.voter.is_eligible:
            raise FlowError(f"Voter is not eligible to vote ({self.voter.status.value})")
        if not self.voter.has_district:
            raise FlowError("Voter has no electoral district on record")
        if not elections:
            raise FlowError("No active election")
        # Single implicit election: the first one the service lists
        self.election_id = elections[0].id
        self.selected_candidate = None
        self._move(Screen.VOTING)

    # --- ballot ---

    def select_candidate(self, candidate: Candidate):
        self._require_screen(Screen.VOTING)
        self.selected_candidate = candidate

    def reset_selection(self):
        self._require_screen(Screen.VOTING)
        self.selected_candidate = None

    def confirm_selection(self):
        self._require_screen(Screen.VOTING)
        if self.selected_candidate is None:
            raise FlowError("No candidate selected")
        self.error = None
        self._move(Screen.CONFIRMATION)

    def go_back(self):
        if self.current_screen == Screen.CONFIRMATION:
            self.error = None
            self._move(Screen.VOTING)
        elif self.current_screen == Screen.VOTING:
            self.selected_candidate = None
        else:
            raise FlowError(f"No way back from '{self.current_screen.value}' screen")

    # --- submission ---

    def build_cast_request(self) -> VoteCastRequest:
        self._require_screen(Screen.CONFIRMATION)
        if self.voter is None or self.selected_candidate is None:
            raise FlowError("A vote needs both a validated voter and a selected candidate")
        if not self.voter.is_eligible:
            raise FlowError("Voter is not eligible to vote")
        return VoteCastRequest(
            voter_id=self.voter.id,
            election_id=self.selected_candidate.election_id or self.election_id,
            candidate_id=self.selected_candidate.candidate_id,
            district=self.voter.district,
        )

    def mark_vote_cast(self):
        self._require_screen(Screen.CONFIRMATION)
        self.vote_submitted = True
        self.error = None
        self._move(Screen.SUCCESS)

    def mark_cast_failed(self, message: str):
        """Keep the voter on confirmation with the backend's message"""
        self._require_screen(Screen.CONFIRMATION)
        self.error = message

    # --- persistence ---

    def to_dict(self) -> dict:
        return {
            'flow_id': self.flow_id,
            'current_screen': self.current_screen.value,
            # The NIC is a credential and stays out of the cookie
            'voter': self.voter.model_dump(mode='json', exclude={'national_id'}) if self.voter else None,
            'election_id': self.election_id,
            'selected_candidate': self.selected_candidate.model_dump(mode='json') if self.selected_candidate else None,
            'vote_submitted': self.vote_submitted,
            'error': self.error,
        }

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> 'VotingSession':
        if not data:
            return cls()
        flow = cls(flow_id=data.get('flow_id'))
        flow.current_screen = Screen(data.get('current_screen', Screen.VALIDATION.value))
        if data.get('voter'):
            flow.voter = VoterProfile.model_validate(data['voter'])
        flow.election_id = data.get('election_id')
        if data.get('selected_candidate'):
            flow.selected_candidate = Candidate.model_validate(data['selected_candidate'])
        flow.vote_submitted = bool(data.get('vote_submitted'))
        flow.error = data.get('error')
        return flow


class SubmissionGuard:
    """Admits at most one vote submission per flow.

    The station keeps its session in a signed cookie, so two quick POSTs can
    both arrive with the pre-submission state. The guard remembers the most
    recent ``max_completed`` flows that cast; older ones are dropped and a
    replay of those falls through to the backend's one-vote-per-voter rule.

    State lives in this process only. Run the station as a single worker
    process (threads are fine); separate workers do not share the guard.
    """

    def __init__(self, max_completed: int = 10000):
        self._lock = threading.Lock()
        self._in_flight = set()
        self._completed = OrderedDict()
        self._max_completed = max_completed

    def acquire(self, flow_id: str) -> bool:
        with self._lock:
            if flow_id in self._in_flight or flow_id in self._completed:
                return False
            self._in_flight.add(flow_id)
            return True

    def finish(self, flow_id: str, cast: bool):
        with self._lock:
            self._in_flight.discard(flow_id)
            if cast:
                self._completed[flow_id] = True
                while len(self._completed) > self._max_completed:
                    self._completed.popitem(last=False)

    def has_cast(self, flow_id: str) -> bool:
        with self._lock:
            return flow_id in self._completed


def countdown_ticks(seconds: int) -> Iterator[int]:
    """Values shown on the success screen, one per second: 5, 4, 3, 2, 1"""
    return iter(range(seconds, 0, -1))
