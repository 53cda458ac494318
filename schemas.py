"""Pydantic models for the payloads exchanged with the election backend.

The backend speaks camelCase JSON; every model accepts those keys and exposes
snake_case attributes. Models are dumped by field name when they are stored
in the station session and validated back from the same shape.
"""
from enum import Enum
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

from config import DISTRICT_PLACEHOLDER


def _as_str(value):
    # Backend ids arrive as numbers or strings depending on the service
    if value is None or isinstance(value, str):
        return value
    return str(value)


class BackendModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class VoterStatus(str, Enum):
    ELIGIBLE = "eligible"
    ALREADY_VOTED = "already-voted"
    INELIGIBLE = "ineligible"


class VoterProfile(BackendModel):
    id: str
    national_id: Optional[str] = Field(default=None, alias="nationalId")
    name: str = Field(default="Unknown", validation_alias=AliasChoices("fullName", "name"))
    name_with_initials: Optional[str] = Field(default=None, alias="nameWithInitials")
    district: Optional[str] = None
    polling_division: Optional[str] = Field(default=None, alias="pollingDivision")
    age: Optional[int] = None
    gender: Optional[str] = None
    address: Optional[str] = None
    status: VoterStatus = VoterStatus.ELIGIBLE
    registration_date: Optional[str] = Field(default=None, alias="registrationDate")
    voted_at: Optional[str] = Field(default=None, alias="votedAt")
    ineligible_reason: Optional[str] = Field(default=None, alias="ineligibleReason")

    @field_validator('id', 'national_id', mode='before')
    @classmethod
    def coerce_ids(cls, v):
        return _as_str(v)

    @field_validator('status', mode='before')
    @classmethod
    def default_status(cls, v):
        # The registration service omits status for voters it has not flagged
        return v or VoterStatus.ELIGIBLE

    @property
    def is_eligible(self) -> bool:
        return self.status == VoterStatus.ELIGIBLE

    @property
    def has_district(self) -> bool:
        return bool(self.district) and self.district != DISTRICT_PLACEHOLDER


class Election(BackendModel):
    id: str
    name: str = Field(default="", validation_alias=AliasChoices("electionName", "election_name", "title", "name"))
    description: Optional[str] = None
    start_date: Optional[str] = Field(default=None, alias="startDate")
    end_date: Optional[str] = Field(default=None, alias="endDate")
    status: Optional[str] = None

    @field_validator('id', mode='before')
    @classmethod
    def coerce_id(cls, v):
        return _as_str(v)


class Candidate(BackendModel):
    id: str
    election_id: Optional[str] = Field(default=None, alias="electionId")
    candidate_id: Optional[str] = Field(default=None, alias="candidateId")
    name: str = Field(default="", validation_alias=AliasChoices("candidateName", "nameEn", "name"))
    party: Optional[str] = Field(default=None, validation_alias=AliasChoices("partyName", "party"))
    symbol: Optional[str] = Field(default=None, validation_alias=AliasChoices("partySymbol", "symbol"))
    symbol_name: Optional[str] = Field(default=None, alias="symbolName")
    is_active: bool = Field(default=True, alias="isActive")

    @field_validator('id', 'election_id', 'candidate_id', mode='before')
    @classmethod
    def coerce_ids(cls, v):
        return _as_str(v)

    @model_validator(mode='after')
    def fill_candidate_id(self):
        if not self.candidate_id:
            self.candidate_id = self.id
        return self


class VoteCastRequest(BackendModel):
    """Body of POST /votes/cast. Built once per submission attempt."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    voter_id: str = Field(alias="voterId")
    election_id: str = Field(alias="electionId")
    candidate_id: str = Field(alias="candidateId")
    district: str

    @field_validator('voter_id', 'election_id', 'candidate_id', 'district', mode='before')
    @classmethod
    def require_value(cls, v):
        v = _as_str(v)
        if not v:
            raise ValueError('must not be empty')
        return v

    def to_payload(self) -> dict:
        return self.model_dump(by_alias=True)


class VoteResult(BackendModel):
    success: bool = True
    message: Optional[str] = None
    vote_id: Optional[str] = Field(default=None, alias="voteId")
    timestamp: Optional[str] = None

    @field_validator('vote_id', mode='before')
    @classmethod
    def coerce_id(cls, v):
        return _as_str(v)


# --- Results service ---

class CandidateResult(BackendModel):
    candidate_id: str = Field(alias="candidateId")
    candidate_name: str = Field(default="", alias="candidateName")
    party_name: Optional[str] = Field(default=None, alias="partyName")
    popular_votes: int = Field(default=0, alias="popularVotes")

    @field_validator('candidate_id', mode='before')
    @classmethod
    def coerce_id(cls, v):
        return _as_str(v)


class DistrictResult(BackendModel):
    district_code: str = Field(alias="districtCode")
    candidate_id: Optional[str] = Field(default=None, alias="candidateId")
    votes_received: int = Field(default=0, alias="votesReceived")
    winner: Optional[str] = None

    @field_validator('candidate_id', mode='before')
    @classmethod
    def coerce_id(cls, v):
        return _as_str(v)


class ElectionSummary(BackendModel):
    election_id: str = Field(alias="electionId")
    election_name: str = Field(default="", alias="electionName")
    total_votes: int = Field(default=0, alias="totalVotes")
    last_updated: Optional[str] = Field(default=None, alias="lastUpdated")
    candidates: List[CandidateResult] = []
    districts: List[DistrictResult] = []

    @field_validator('election_id', mode='before')
    @classmethod
    def coerce_id(cls, v):
        return _as_str(v)

    def vote_share(self, candidate: CandidateResult) -> float:
        """Percentage of all votes won by a candidate, rounded to 2 places"""
        if self.total_votes <= 0:
            return 0.0
        return round(candidate.popular_votes * 100 / self.total_votes, 2)
