import logging

from api_client import BackendError, VoteRejected
from schemas import ElectionSummary, VoterProfile
import polling_station


def test_index_shows_lookup_form(client):
    resp = client.get("/")
    assert resp.status_code == 200
    assert b"Voter Lookup" in resp.data
    assert b"Enter NIC number to view voter profile" in resp.data


def test_full_voting_scenario(client, fake_backend, flow_state):
    resp = client.post("/validate", data={"nic": "123456789v", "password": "pw1"}, follow_redirects=True)
    assert b"Eligible to Vote" in resp.data
    assert b"Proceed to Voting Booth" in resp.data
    assert flow_state()["current_screen"] == "validation"

    resp = client.post("/proceed", follow_redirects=True)
    assert b"Saman Jayasuriya" in resp.data
    assert b"Dilani Wickramasinghe" in resp.data
    assert flow_state()["current_screen"] == "voting"
    assert flow_state()["election_id"] == "e-1"

    resp = client.post("/select", data={"candidate_id": "1"}, follow_redirects=True)
    assert b"Selected Candidate" in resp.data

    resp = client.post("/confirm", follow_redirects=True)
    assert b"Confirm Your Vote" in resp.data
    assert flow_state()["current_screen"] == "confirmation"

    resp = client.post("/submit", follow_redirects=True)
    assert b"Vote Successfully Cast!" in resp.data
    assert flow_state()["current_screen"] == "success"
    assert flow_state()["vote_submitted"] is True

    vote = next(call[1] for call in fake_backend.calls if call[0] == "cast_vote")
    assert vote.to_payload() == {
        "voterId": "v-100", "electionId": "e-1", "candidateId": "1", "district": "Colombo",
    }


def test_nic_is_upper_cased_before_lookup(client, fake_backend):
    client.post("/validate", data={"nic": " 123456789v ", "password": "pw1"})
    assert ("validate_voter", "123456789V") in fake_backend.calls


def test_validation_requires_both_fields(client, fake_backend):
    resp = client.post("/validate", data={"nic": "123456789V", "password": "  "}, follow_redirects=True)
    assert b"NIC number and password are both required" in resp.data
    assert fake_backend.count("validate_voter") == 0


def test_unknown_voter_is_not_found(client, flow_state):
    resp = client.post("/validate", data={"nic": "000000000V", "password": "nope"}, follow_redirects=True)
    assert b"Voter not found" in resp.data
    assert b"Proceed to Voting Booth" not in resp.data
    assert flow_state()["voter"] is None


def test_backend_outage_during_validation(client, fake_backend):
    fake_backend.validate_error = BackendError("Could not reach the election service: timed out")
    resp = client.post("/validate", data={"nic": "123456789V", "password": "pw1"}, follow_redirects=True)
    assert b"Voter not found" in resp.data
    assert b"Could not reach the election service" in resp.data


def test_credentials_are_not_kept_in_session_or_logs(client, caplog):
    caplog.set_level(logging.DEBUG)
    client.post("/validate", data={"nic": "000000000V", "password": "nope"})
    client.post("/validate", data={"nic": "123456789V", "password": "pw1"})
    client.get("/")

    with client.session_transaction() as sess:
        stored = repr(dict(sess))
    for secret in ("pw1", "nope", "123456789V", "000000000V"):
        assert secret not in stored
        assert secret not in caplog.text


def test_already_voted_profile_cannot_proceed(client, fake_backend, flow_state):
    fake_backend.voters[("555V", "pw")] = VoterProfile.model_validate({
        "id": "v-5", "fullName": "Kumari Silva", "district": "Kandy",
        "status": "already-voted", "votedAt": "2024-09-21T08:15:00",
    })
    resp = client.post("/validate", data={"nic": "555V", "password": "pw"}, follow_redirects=True)
    assert b"Already Voted" in resp.data
    assert b"2024-09-21T08:15:00" in resp.data
    assert b"Proceed to Voting Booth" not in resp.data

    resp = client.post("/proceed", follow_redirects=True)
    assert b"not eligible" in resp.data
    assert flow_state()["current_screen"] == "validation"


def test_ineligible_reason_is_shown(client, fake_backend):
    fake_backend.voters[("666V", "pw")] = VoterProfile.model_validate({
        "id": "v-6", "fullName": "Ruwan Fernando", "district": "Galle",
        "status": "ineligible", "ineligibleReason": "Under the minimum voting age",
    })
    resp = client.post("/validate", data={"nic": "666V", "password": "pw"}, follow_redirects=True)
    assert b"Under the minimum voting age" in resp.data


def test_missing_district_blocks_voting(client, fake_backend, flow_state):
    fake_backend.voters[("777V", "pw")] = VoterProfile.model_validate({
        "id": "v-7", "fullName": "Ayesha Fonseka", "district": "District Not Available",
    })
    resp = client.post("/validate", data={"nic": "777V", "password": "pw"}, follow_redirects=True)
    assert b"District Information Missing" in resp.data
    assert b"Proceed to Voting Booth" not in resp.data

    client.post("/proceed")
    assert flow_state()["current_screen"] == "validation"


def test_no_active_election(client, fake_backend, flow_state):
    fake_backend.elections = []
    resp = client.post("/validate", data={"nic": "123456789V", "password": "pw1"}, follow_redirects=True)
    assert b"No Elections Available" in resp.data

    resp = client.post("/proceed", follow_redirects=True)
    assert b"No active election" in resp.data
    assert flow_state()["current_screen"] == "validation"


def test_empty_candidate_list(voter_on_ballot, fake_backend):
    fake_backend.candidates = []
    resp = voter_on_ballot.get("/ballot")
    assert b"No Candidates Available" in resp.data
    assert b"Return to Validation" in resp.data


def test_candidate_fetch_error(voter_on_ballot, fake_backend):
    fake_backend.candidates_error = BackendError("HTTP 503")
    resp = voter_on_ballot.get("/ballot")
    assert b"Error Loading Candidates" in resp.data
    assert b"HTTP 503" in resp.data


def test_unexpected_candidate_error_is_shown_on_ballot(voter_on_ballot, fake_backend, flow_state):
    fake_backend.candidates_error = RuntimeError("bug")
    resp = voter_on_ballot.get("/ballot")
    assert resp.status_code == 200
    assert b"Unexpected error, please try again" in resp.data
    assert flow_state()["current_screen"] == "voting"

    resp = voter_on_ballot.post("/select", data={"candidate_id": "1"}, follow_redirects=True)
    assert resp.status_code == 200
    assert b"Unexpected error, please try again" in resp.data
    assert flow_state()["selected_candidate"] is None


def test_unexpected_validation_error_stays_on_validation(client, fake_backend):
    fake_backend.validate_error = KeyError("fullName")
    resp = client.post("/validate", data={"nic": "123456789V", "password": "pw1"}, follow_redirects=True)
    assert resp.status_code == 200
    assert b"Unexpected error, please try again" in resp.data
    assert b"Proceed to Voting Booth" not in resp.data


def test_unexpected_election_error_on_proceed(client, fake_backend, flow_state, monkeypatch):
    client.post("/validate", data={"nic": "123456789V", "password": "pw1"})

    def boom():
        raise RuntimeError("bug")

    monkeypatch.setattr(fake_backend, "get_active_elections", boom)
    resp = client.post("/proceed", follow_redirects=True)
    assert resp.status_code == 200
    assert b"Unexpected error, please try again" in resp.data
    assert flow_state()["current_screen"] == "validation"


def test_selecting_unknown_candidate(voter_on_ballot, flow_state):
    resp = voter_on_ballot.post("/select", data={"candidate_id": "42"}, follow_redirects=True)
    assert b"Selected candidate is not on the ballot" in resp.data
    assert flow_state()["selected_candidate"] is None


def test_reset_selection_stays_on_ballot(voter_on_ballot, flow_state):
    voter_on_ballot.post("/select", data={"candidate_id": "2"})
    voter_on_ballot.post("/reset-selection")
    assert flow_state()["selected_candidate"] is None
    assert flow_state()["current_screen"] == "voting"


def test_confirm_without_selection_is_rejected(voter_on_ballot, flow_state):
    resp = voter_on_ballot.post("/confirm", follow_redirects=True)
    assert b"No candidate selected" in resp.data
    assert flow_state()["current_screen"] == "voting"


def test_go_back_from_confirmation_keeps_selection(voter_on_confirmation, flow_state):
    resp = voter_on_confirmation.post("/back", follow_redirects=True)
    assert b"Selected Candidate" in resp.data
    assert flow_state()["current_screen"] == "voting"
    assert flow_state()["selected_candidate"]["candidate_id"] == "1"


def test_rejected_vote_stays_on_confirmation(voter_on_confirmation, fake_backend, flow_state):
    fake_backend.cast_outcomes = [VoteRejected("You have already voted in this election", 409)]
    resp = voter_on_confirmation.post("/submit", follow_redirects=True)
    assert b"Confirm Your Vote" in resp.data
    assert b"You have already voted in this election" in resp.data
    assert flow_state()["current_screen"] == "confirmation"
    assert flow_state()["vote_submitted"] is False


def test_retry_after_failure_uses_same_selection(voter_on_confirmation, fake_backend, flow_state):
    fake_backend.cast_outcomes = [BackendError("Could not reach the election service")]
    voter_on_confirmation.post("/submit")
    resp = voter_on_confirmation.post("/submit", follow_redirects=True)

    assert b"Vote Successfully Cast!" in resp.data
    votes = [call[1] for call in fake_backend.calls if call[0] == "cast_vote"]
    assert len(votes) == 2
    assert votes[0] == votes[1]


def test_unexpected_error_leaves_voter_on_confirmation(voter_on_confirmation, fake_backend, flow_state):
    fake_backend.cast_outcomes = [RuntimeError("bug")]
    resp = voter_on_confirmation.post("/submit", follow_redirects=True)
    assert b"Unexpected error while submitting your vote" in resp.data
    assert flow_state()["current_screen"] == "confirmation"


def test_double_submit_issues_one_cast(voter_on_confirmation, fake_backend):
    with voter_on_confirmation.session_transaction() as sess:
        stale = dict(sess)

    voter_on_confirmation.post("/submit")
    # Second click arrives carrying the cookie from before the first response
    with voter_on_confirmation.session_transaction() as sess:
        sess.clear()
        sess.update(stale)
    resp = voter_on_confirmation.post("/submit", follow_redirects=True)

    assert fake_backend.count("cast_vote") == 1
    assert b"Vote Successfully Cast!" in resp.data


def test_submit_while_in_flight_makes_no_call(voter_on_confirmation, fake_backend, flow_state):
    polling_station.guard.acquire(flow_state()["flow_id"])
    resp = voter_on_confirmation.post("/submit", follow_redirects=True)
    assert fake_backend.count("cast_vote") == 0
    assert b"Confirm Your Vote" in resp.data


def test_submit_out_of_order_is_ignored(client, fake_backend):
    resp = client.post("/submit")
    assert resp.status_code == 302
    assert fake_backend.count("cast_vote") == 0


def test_screens_redirect_to_current_step(voter_on_ballot):
    assert voter_on_ballot.get("/").headers["Location"].endswith("/ballot")
    assert voter_on_ballot.get("/confirmation").headers["Location"].endswith("/ballot")
    assert voter_on_ballot.get("/success").headers["Location"].endswith("/ballot")


def test_success_page_counts_down_five_seconds(voter_on_confirmation):
    resp = voter_on_confirmation.post("/submit", follow_redirects=True)
    assert b"5 seconds" in resp.data
    assert b"[5, 4, 3, 2, 1]" in resp.data
    assert polling_station.AUTO_RESET_SECONDS == 5
    assert b'content="5;url=/reset"' in resp.data
    assert b"setInterval" in resp.data


def test_reset_clears_everything(voter_on_confirmation, flow_state):
    voter_on_confirmation.post("/submit")
    resp = voter_on_confirmation.get("/reset")
    assert resp.headers["Location"].endswith("/")
    with voter_on_confirmation.session_transaction() as sess:
        assert dict(sess) == {}

    resp = voter_on_confirmation.get("/")
    assert b"Enter NIC number to view voter profile" in resp.data


def test_countdown_length_follows_auto_reset_setting(voter_on_confirmation, monkeypatch):
    monkeypatch.setattr(polling_station, "AUTO_RESET_SECONDS", 3)
    resp = voter_on_confirmation.post("/submit", follow_redirects=True)
    assert b"[3, 2, 1]" in resp.data
    assert b'content="3;url=/reset"' in resp.data


def test_countdown_posts_the_reset_form(voter_on_confirmation):
    resp = voter_on_confirmation.post("/submit", follow_redirects=True)
    assert b'id="reset-form"' in resp.data
    assert b"document.getElementById('reset-form').submit()" in resp.data


def test_reset_link_does_not_end_a_vote_in_progress(voter_on_ballot, flow_state):
    resp = voter_on_ballot.get("/reset")
    assert resp.headers["Location"].endswith("/ballot")
    assert flow_state()["current_screen"] == "voting"

    voter_on_ballot.post("/reset")
    assert flow_state() is None


def test_results_dashboard(client, monkeypatch):
    class FakeResults:
        def get_election_summary(self, election_id):
            return ElectionSummary.model_validate({
                "electionId": election_id, "electionName": "Presidential Election", "totalVotes": 4,
                "candidates": [{"candidateId": "1", "candidateName": "Saman Jayasuriya", "popularVotes": 3}],
                "districts": [{"districtCode": "Colombo", "candidateId": "1", "votesReceived": 3, "winner": "1"}],
            })

    monkeypatch.setattr(polling_station, "results", FakeResults())
    resp = client.get("/results/e-1")
    assert resp.status_code == 200
    assert b"Presidential Election" in resp.data
    assert b"75.00%" in resp.data
    assert b"Colombo" in resp.data


def test_results_dashboard_backend_error(client, monkeypatch):
    class BrokenResults:
        def get_election_summary(self, election_id):
            raise BackendError("HTTP 500")

    monkeypatch.setattr(polling_station, "results", BrokenResults())
    resp = client.get("/results/e-1")
    assert resp.status_code == 502
    assert b"Error loading results: HTTP 500" in resp.data


def test_healthz(client):
    assert client.get("/healthz").get_json() == {"status": "ok"}
