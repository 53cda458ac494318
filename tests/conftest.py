import pytest

import polling_station
from api_client import VoterNotFound
from schemas import Candidate, Election, VoteResult, VoterProfile
from voting_session import SubmissionGuard

ELIGIBLE_VOTER = {
    "id": "v-100",
    "nationalId": "123456789V",
    "fullName": "Nimal Perera",
    "district": "Colombo",
    "pollingDivision": "Borella",
    "age": 42,
    "gender": "Male",
    "status": "eligible",
    "registrationDate": "2020-01-15",
}

CANDIDATES = [
    {"id": 1, "electionId": "e-1", "candidateName": "Saman Jayasuriya", "partyName": "UPF", "partySymbol": "🐘"},
    {"id": 2, "electionId": "e-1", "candidateName": "Dilani Wickramasinghe", "partyName": "NPA", "partySymbol": "🦁"},
]


class FakeBackend:
    """Stands in for BackendClient and records every call"""

    def __init__(self):
        self.voters = {("123456789V", "pw1"): VoterProfile.model_validate(ELIGIBLE_VOTER)}
        self.elections = [Election(id="e-1", name="Presidential Election")]
        self.candidates = [Candidate.model_validate(c) for c in CANDIDATES]
        self.cast_outcomes = []
        self.validate_error = None
        self.candidates_error = None
        self.calls = []

    def validate_voter(self, national_id, password):
        self.calls.append(("validate_voter", national_id))
        if self.validate_error:
            raise self.validate_error
        try:
            return self.voters[(national_id, password)]
        except KeyError:
            raise VoterNotFound("Invalid credentials", 401)

    def get_active_elections(self):
        self.calls.append(("get_active_elections",))
        return list(self.elections)

    def get_candidates(self, election_id):
        self.calls.append(("get_candidates", election_id))
        if self.candidates_error:
            raise self.candidates_error
        return list(self.candidates)

    def cast_vote(self, vote):
        self.calls.append(("cast_vote", vote))
        outcome = self.cast_outcomes.pop(0) if self.cast_outcomes else VoteResult(success=True)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def count(self, name):
        return sum(1 for call in self.calls if call[0] == name)


@pytest.fixture
def fake_backend(monkeypatch):
    fake = FakeBackend()
    monkeypatch.setattr(polling_station, "backend", fake)
    monkeypatch.setattr(polling_station, "guard", SubmissionGuard())
    return fake


@pytest.fixture
def client(fake_backend):
    polling_station.app.config["TESTING"] = True
    with polling_station.app.test_client() as client:
        yield client


@pytest.fixture
def voter_on_ballot(client):
    client.post("/validate", data={"nic": "123456789V", "password": "pw1"})
    client.post("/proceed")
    return client


@pytest.fixture
def voter_on_confirmation(voter_on_ballot):
    voter_on_ballot.post("/select", data={"candidate_id": "1"})
    voter_on_ballot.post("/confirm")
    return voter_on_ballot


@pytest.fixture
def flow_state(client):
    """Current voting flow as stored in the station session"""
    def read():
        with client.session_transaction() as sess:
            return sess.get("flow")
    return read
