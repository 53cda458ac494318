"""Development stand-in for the election services.

Serves the slice of the vote and results services the polling station talks
to, backed by SQLite and seeded with a handful of voters and one active
election. Not a production backend: there is no auth and passwords are only
hashed, not salted.

    python mock_backend.py
"""
from fastapi import FastAPI, HTTPException, Depends, status
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime, timezone
from sqlalchemy import create_engine, Column, Integer, String, DateTime, Boolean, ForeignKey, UniqueConstraint, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import declarative_base, sessionmaker, Session, relationship
from sqlalchemy.pool import StaticPool
import hashlib
import logging
import uvicorn

from config import MOCK_BACKEND_DB_URL, MOCK_BACKEND_PORT, configure_logging

logger = logging.getLogger(__name__)

VOTE_PREFIX = "/vote/api/v1"
RESULT_PREFIX = "/result/api/v1"

# Database setup
if MOCK_BACKEND_DB_URL.startswith("sqlite"):
    # One shared connection so the in-memory database is visible to every worker thread
    engine = create_engine(MOCK_BACKEND_DB_URL, connect_args={"check_same_thread": False}, poolclass=StaticPool)
else:
    engine = create_engine(MOCK_BACKEND_DB_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()

app = FastAPI(title="Election Services (development)", version="1.0.0")


# Database Models
class Voter(Base):
    __tablename__ = "voters"

    id = Column(Integer, primary_key=True, index=True)
    national_id = Column(String, unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=False)
    full_name = Column(String, nullable=False)
    name_with_initials = Column(String)
    district = Column(String)
    polling_division = Column(String)
    age = Column(Integer)
    gender = Column(String)
    address = Column(String)
    registered_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    ineligible_reason = Column(String)  # set when the registry struck the voter off

    votes = relationship("Vote", back_populates="voter")


class Election(Base):
    __tablename__ = "elections"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    description = Column(String)
    start_date = Column(String)
    end_date = Column(String)
    is_active = Column(Boolean, default=True)

    candidates = relationship("Candidate", back_populates="election", cascade="all, delete-orphan", order_by="Candidate.id")


class Candidate(Base):
    __tablename__ = "candidates"

    id = Column(Integer, primary_key=True, index=True)
    election_id = Column(Integer, ForeignKey("elections.id"))
    name = Column(String, nullable=False)
    party = Column(String)
    symbol = Column(String)
    is_active = Column(Boolean, default=True)

    election = relationship("Election", back_populates="candidates")


class Vote(Base):
    __tablename__ = "votes"
    __table_args__ = (UniqueConstraint("voter_id", "election_id", name="uq_one_vote_per_election"),)

    id = Column(Integer, primary_key=True, index=True)
    voter_id = Column(Integer, ForeignKey("voters.id"), nullable=False)
    election_id = Column(Integer, ForeignKey("elections.id"), nullable=False)
    candidate_id = Column(Integer, ForeignKey("candidates.id"), nullable=False)
    district = Column(String, nullable=False)
    cast_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    voter = relationship("Voter", back_populates="votes")


# Pydantic models
class VoterCredentials(BaseModel):
    national_id: str = Field(alias="nationalId", min_length=1)
    password: str = Field(min_length=1)


class VoteCast(BaseModel):
    voter_id: str = Field(alias="voterId")
    election_id: str = Field(alias="electionId")
    candidate_id: str = Field(alias="candidateId")
    district: str


# Dependency
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# Helper functions
def hash_password(password: str) -> str:
    return hashlib.sha256(password.encode()).hexdigest()


def active_election(db: Session) -> Optional[Election]:
    return db.query(Election).filter(Election.is_active.is_(True)).order_by(Election.id).first()


def as_int(value: str, what: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise HTTPException(status_code=404, detail=f"{what} not found")


def voter_profile(db: Session, voter: Voter) -> dict:
    """Voter record with the eligibility verdict for the active election"""
    profile = {
        "id": str(voter.id),
        "nationalId": voter.national_id,
        "fullName": voter.full_name,
        "nameWithInitials": voter.name_with_initials,
        "district": voter.district,
        "pollingDivision": voter.polling_division,
        "age": voter.age,
        "gender": voter.gender,
        "address": voter.address,
        "registrationDate": voter.registered_at.date().isoformat() if voter.registered_at else None,
        "status": "eligible",
    }
    if voter.ineligible_reason:
        profile["status"] = "ineligible"
        profile["ineligibleReason"] = voter.ineligible_reason
        return profile

    election = active_election(db)
    if election is not None:
        vote = db.query(Vote).filter(Vote.voter_id == voter.id, Vote.election_id == election.id).first()
        if vote is not None:
            profile["status"] = "already-voted"
            profile["votedAt"] = vote.cast_at.isoformat()
    return profile


def seed_database(db: Session):
    """Sample voters, one active election and its candidates"""
    voters = [
        Voter(national_id="123456789V", password_hash=hash_password("pw1"), full_name="Nimal Perera",
              name_with_initials="N. Perera", district="Colombo", polling_division="Borella",
              age=42, gender="Male", address="12 Temple Road, Colombo 08"),
        Voter(national_id="987654321V", password_hash=hash_password("pw2"), full_name="Kumari Silva",
              name_with_initials="K. Silva", district="Kandy", polling_division="Senkadagala",
              age=35, gender="Female", address="4 Hill Street, Kandy"),
        Voter(national_id="456789123V", password_hash=hash_password("pw3"), full_name="Ruwan Fernando",
              name_with_initials="R. Fernando", district="Galle", polling_division="Galle",
              age=17, gender="Male", ineligible_reason="Under the minimum voting age"),
        Voter(national_id="200012345678", password_hash=hash_password("pw4"), full_name="Ayesha Fonseka",
              name_with_initials="A. Fonseka", district=None, polling_division=None,
              age=24, gender="Female"),
    ]
    election = Election(name="Presidential Election 2024", description="National presidential election",
                        start_date="2024-09-21", end_date="2024-09-21", is_active=True)
    election.candidates = [
        Candidate(name="Saman Jayasuriya", party="United People's Front", symbol="🐘"),
        Candidate(name="Dilani Wickramasinghe", party="National Progress Alliance", symbol="🦁"),
        Candidate(name="Withdrawn Candidate", party="Independent", symbol="🌳", is_active=False),
    ]
    db.add_all(voters)
    db.add(election)
    db.commit()


def reset_database():
    """Drop, recreate and seed all tables"""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        seed_database(db)
    finally:
        db.close()
    logger.info("Development database seeded")


# API Endpoints

@app.post(f"{VOTE_PREFIX}/voters/validate")
def validate_voter(credentials: VoterCredentials, db: Session = Depends(get_db)):
    """Check credentials and return the voter profile"""
    voter = db.query(Voter).filter(Voter.national_id == credentials.national_id.upper()).first()
    if voter is None or voter.password_hash != hash_password(credentials.password):
        raise HTTPException(status_code=401, detail="Invalid national ID or password")
    return {"success": True, "data": voter_profile(db, voter)}


@app.get(f"{VOTE_PREFIX}/elections/active")
def get_active_elections(db: Session = Depends(get_db)):
    elections = db.query(Election).filter(Election.is_active.is_(True)).order_by(Election.id).all()
    return [
        {
            "id": str(e.id),
            "electionName": e.name,
            "description": e.description,
            "startDate": e.start_date,
            "endDate": e.end_date,
            "status": "active",
        }
        for e in elections
    ]


@app.get(f"{VOTE_PREFIX}/candidates/election/{{election_id}}")
def get_candidates(election_id: str, db: Session = Depends(get_db)):
    """All candidates of an election, inactive ones flagged"""
    election_pk = as_int(election_id, "Election")
    candidates = db.query(Candidate).filter(Candidate.election_id == election_pk).order_by(Candidate.id).all()
    return [
        {
            "id": str(c.id),
            "electionId": str(c.election_id),
            "candidateId": str(c.id),
            "candidateName": c.name,
            "partyName": c.party,
            "partySymbol": c.symbol,
            "isActive": c.is_active,
        }
        for c in candidates
    ]


@app.post(f"{VOTE_PREFIX}/votes/cast", status_code=status.HTTP_201_CREATED)
def cast_vote(ballot: VoteCast, db: Session = Depends(get_db)):
    """Record one vote per voter per election"""
    voter = db.query(Voter).filter(Voter.id == as_int(ballot.voter_id, "Voter")).first()
    if voter is None:
        raise HTTPException(status_code=404, detail="Voter not found")
    if voter.ineligible_reason:
        raise HTTPException(status_code=403, detail=f"Voter is not eligible: {voter.ineligible_reason}")

    election = db.query(Election).filter(Election.id == as_int(ballot.election_id, "Election")).first()
    if election is None:
        raise HTTPException(status_code=404, detail="Election not found")
    if not election.is_active:
        raise HTTPException(status_code=400, detail="Election is not active")

    candidate = db.query(Candidate).filter(
        Candidate.id == as_int(ballot.candidate_id, "Candidate"),
        Candidate.election_id == election.id,
    ).first()
    if candidate is None or not candidate.is_active:
        raise HTTPException(status_code=404, detail="Candidate not found in this election")

    if ballot.district != voter.district:
        raise HTTPException(status_code=400, detail="District does not match the voter's registration")

    vote = Vote(voter_id=voter.id, election_id=election.id, candidate_id=candidate.id, district=ballot.district)
    db.add(vote)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.warning(f"Duplicate vote blocked: voter {voter.id} election {election.id}")
        raise HTTPException(status_code=409, detail="You have already voted in this election")
    db.refresh(vote)

    logger.info(f"Vote recorded: voter {voter.id} election {election.id}")
    return {
        "success": True,
        "message": "Vote recorded",
        "voteId": str(vote.id),
        "timestamp": vote.cast_at.isoformat(),
    }


@app.get(f"{RESULT_PREFIX}/election/{{election_id}}/summary")
def election_summary(election_id: str, db: Session = Depends(get_db)):
    """Vote totals per candidate and per district"""
    election = db.query(Election).filter(Election.id == as_int(election_id, "Election")).first()
    if election is None:
        raise HTTPException(status_code=404, detail="Election not found")

    counts = dict(
        db.query(Vote.candidate_id, func.count(Vote.id))
        .filter(Vote.election_id == election.id)
        .group_by(Vote.candidate_id)
        .all()
    )
    district_rows = (
        db.query(Vote.district, Vote.candidate_id, func.count(Vote.id))
        .filter(Vote.election_id == election.id)
        .group_by(Vote.district, Vote.candidate_id)
        .order_by(Vote.district, Vote.candidate_id)
        .all()
    )

    leaders = {}
    for district, candidate_id, votes in district_rows:
        if district not in leaders or votes > leaders[district][1]:
            leaders[district] = (candidate_id, votes)

    return {
        "electionId": str(election.id),
        "electionName": election.name,
        "totalVotes": sum(counts.values()),
        "lastUpdated": datetime.now(timezone.utc).isoformat(),
        "candidates": [
            {
                "candidateId": str(c.id),
                "candidateName": c.name,
                "partyName": c.party,
                "popularVotes": counts.get(c.id, 0),
            }
            for c in election.candidates
        ],
        "districts": [
            {
                "districtCode": district,
                "candidateId": str(candidate_id),
                "votesReceived": votes,
                "winner": str(leaders[district][0]) if leaders[district][0] == candidate_id else None,
            }
            for district, candidate_id, votes in district_rows
        ],
    }


reset_database()

if __name__ == "__main__":
    configure_logging()
    uvicorn.run(app, host="0.0.0.0", port=MOCK_BACKEND_PORT)
