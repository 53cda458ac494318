from flask import Flask, render_template_string, request, redirect, url_for, session, jsonify
from werkzeug.exceptions import HTTPException
import logging

from api_client import BackendClient, BackendError, ResultsClient, VoterNotFound
from config import (
    AUTO_RESET_SECONDS,
    BACKEND_API_URL,
    FLASK_SECRET_KEY,
    REQUEST_TIMEOUT,
    RESULTS_API_URL,
    STATION_HOST,
    STATION_PORT,
    configure_logging,
)
from pages import (
    BALLOT_TEMPLATE,
    CONFIRMATION_TEMPLATE,
    RESULTS_TEMPLATE,
    STATUS_LABELS,
    SUCCESS_TEMPLATE,
    VALIDATION_TEMPLATE,
)
from voting_session import FlowError, Screen, SubmissionGuard, VotingSession, countdown_ticks

logger = logging.getLogger(__name__)

# --- Flask app + secret ---
app = Flask(__name__)
app.secret_key = FLASK_SECRET_KEY

# --- Backend services ---
backend = BackendClient(BACKEND_API_URL, timeout=REQUEST_TIMEOUT)
results = ResultsClient(RESULTS_API_URL, timeout=REQUEST_TIMEOUT)
guard = SubmissionGuard()

SCREEN_ROUTES = {
    Screen.VALIDATION: 'index',
    Screen.VOTING: 'ballot',
    Screen.CONFIRMATION: 'confirmation',
    Screen.SUCCESS: 'success',
}

UNEXPECTED_ERROR = 'Unexpected error, please try again'


def load_flow() -> VotingSession:
    return VotingSession.from_dict(session.get('flow'))


def save_flow(flow: VotingSession):
    session['flow'] = flow.to_dict()


def to_screen(flow: VotingSession, **params):
    return redirect(url_for(SCREEN_ROUTES[flow.current_screen], **params))


@app.errorhandler(FlowError)
def handle_flow_error(e):
    # Out-of-order action (stale tab, replayed form): send the voter back to where they are
    flow = load_flow()
    logger.warning(f"Rejected action {request.method} {request.path} on '{flow.current_screen.value}': {e}")
    return to_screen(flow, error=str(e))


@app.errorhandler(Exception)
def handle_unexpected_error(e):
    if isinstance(e, HTTPException):
        return e
    logger.exception(f"Unexpected error in {request.method} {request.path}")
    return to_screen(load_flow(), error=UNEXPECTED_ERROR)


# Routes
@app.route('/')
def index():
    """Voter validation screen"""
    flow = load_flow()
    if flow.current_screen != Screen.VALIDATION:
        return to_screen(flow)

    elections = None
    elections_error = None
    if flow.voter is not None:
        try:
            elections = backend.get_active_elections()
        except BackendError as e:
            elections_error = e.message
        except Exception:
            # Rendered in place; redirecting here would loop back into the same fetch
            logger.exception("Unexpected error loading active elections")
            elections_error = UNEXPECTED_ERROR

    return render_template_string(
        VALIDATION_TEMPLATE,
        title='Voter Validation',
        validation_status=session.get('validation_status', 'idle'),
        voter=flow.voter,
        elections=elections,
        elections_error=elections_error,
        status_labels=STATUS_LABELS,
        error=request.args.get('error') or flow.error,
    )


@app.route('/validate', methods=['POST'])
def validate():
    flow = load_flow()
    if flow.current_screen != Screen.VALIDATION:
        return to_screen(flow)

    nic = request.form.get('nic', '').strip().upper()
    password = request.form.get('password', '')

    if not nic or not password.strip():
        return redirect(url_for('index', error='NIC number and password are both required'))

    profile = None
    error = None
    try:
        profile = backend.validate_voter(nic, password)
    except VoterNotFound:
        logger.info("Voter lookup failed: no voter matches the given credentials")
    except BackendError as e:
        error = e.message

    flow.record_validation(profile)
    flow.error = error
    session['validation_status'] = 'found' if profile else 'not-found'
    save_flow(flow)

    if profile:
        logger.info(f"Voter {profile.id} validated with status {profile.status.value}")
    return redirect(url_for('index'))


@app.route('/proceed', methods=['POST'])
def proceed():
    flow = load_flow()
    try:
        elections = backend.get_active_elections()
    except BackendError as e:
        return redirect(url_for('index', error=f'Could not load active elections: {e.message}'))

    flow.proceed_to_voting(elections)
    save_flow(flow)
    return redirect(url_for('ballot'))


def _active_candidates(flow: VotingSession):
    return backend.get_candidates(flow.election_id)


@app.route('/ballot')
def ballot():
    """Candidate listing for the active election"""
    flow = load_flow()
    if flow.current_screen != Screen.VOTING:
        return to_screen(flow)

    candidates = []
    candidates_error = None
    try:
        candidates = _active_candidates(flow)
    except BackendError as e:
        candidates_error = e.message
    except Exception:
        logger.exception(f"Unexpected error loading candidates for election {flow.election_id}")
        candidates_error = UNEXPECTED_ERROR

    return render_template_string(
        BALLOT_TEMPLATE,
        title='Cast Your Vote',
        candidates=candidates,
        candidates_error=candidates_error,
        selected=flow.selected_candidate,
        election_id=flow.election_id,
        error=request.args.get('error'),
    )


@app.route('/select', methods=['POST'])
def select():
    flow = load_flow()
    if flow.current_screen != Screen.VOTING:
        return to_screen(flow)

    candidate_id = request.form.get('candidate_id', '')
    try:
        candidates = _active_candidates(flow)
    except BackendError as e:
        return redirect(url_for('ballot', error=e.message))

    # Only a candidate the service currently lists can be selected
    candidate = next((c for c in candidates if c.candidate_id == candidate_id), None)
    if candidate is None:
        return redirect(url_for('ballot', error='Selected candidate is not on the ballot'))

    flow.select_candidate(candidate)
    save_flow(flow)
    return redirect(url_for('ballot'))


@app.route('/reset-selection', methods=['POST'])
def reset_selection():
    flow = load_flow()
    flow.reset_selection()
    save_flow(flow)
    return redirect(url_for('ballot'))


@app.route('/confirm', methods=['POST'])
def confirm():
    flow = load_flow()
    flow.confirm_selection()
    save_flow(flow)
    return redirect(url_for('confirmation'))


@app.route('/confirmation')
def confirmation():
    flow = load_flow()
    if flow.current_screen != Screen.CONFIRMATION:
        return to_screen(flow)

    return render_template_string(
        CONFIRMATION_TEMPLATE,
        title='Confirm Your Vote',
        candidate=flow.selected_candidate,
        error=flow.error or request.args.get('error'),
    )


@app.route('/back', methods=['POST'])
def back():
    flow = load_flow()
    flow.go_back()
    save_flow(flow)
    return to_screen(flow)


@app.route('/submit', methods=['POST'])
def submit():
    """Cast the confirmed ballot. Issues at most one backend call per flow."""
    flow = load_flow()
    if flow.current_screen != Screen.CONFIRMATION:
        return to_screen(flow)

    if guard.has_cast(flow.flow_id):
        # A duplicate POST carrying the pre-submission cookie
        flow.mark_vote_cast()
        save_flow(flow)
        return to_screen(flow)

    vote = flow.build_cast_request()
    if not guard.acquire(flow.flow_id):
        logger.warning(f"Duplicate submission ignored for flow {flow.flow_id}")
        return to_screen(flow)

    cast = False
    try:
        backend.cast_vote(vote)
        cast = True
    except BackendError as e:
        flow.mark_cast_failed(e.message)
    except Exception:
        logger.exception(f"Unexpected error casting vote for flow {flow.flow_id}")
        flow.mark_cast_failed('Unexpected error while submitting your vote. Please try again.')
    finally:
        guard.finish(flow.flow_id, cast)

    if cast:
        logger.info(f"Vote cast for voter {vote.voter_id} in election {vote.election_id}")
        flow.mark_vote_cast()
    save_flow(flow)
    return to_screen(flow)


@app.route('/success')
def success():
    flow = load_flow()
    if flow.current_screen != Screen.SUCCESS:
        return to_screen(flow)

    return render_template_string(
        SUCCESS_TEMPLATE,
        title='Vote Cast',
        ticks=list(countdown_ticks(AUTO_RESET_SECONDS)),
    )


@app.route('/reset', methods=['GET', 'POST'])
def reset():
    """Drop every trace of the previous voter and start over"""
    flow = load_flow()
    # GET is the no-script refresh and only resets from the success screen
    if request.method == 'GET' and flow.current_screen != Screen.SUCCESS:
        return to_screen(flow)

    flow_id = session.get('flow', {}).get('flow_id')
    session.clear()
    logger.info(f"Station reset (flow {flow_id})")
    return redirect(url_for('index'))


@app.route('/results/<election_id>')
def view_results(election_id):
    """Election results dashboard"""
    try:
        summary = results.get_election_summary(election_id)
    except BackendError as e:
        return render_template_string(RESULTS_TEMPLATE, title='Election Results', error=e.message), 502

    return render_template_string(RESULTS_TEMPLATE, title='Election Results', summary=summary, error=None)


@app.route('/healthz')
def healthz():
    return jsonify({'status': 'ok'})


if __name__ == '__main__':
    configure_logging()
    print("=" * 60)
    print("POLLING STATION")
    print("=" * 60)
    print(f"\nMake sure the election backend is running at: {BACKEND_API_URL}")
    print(f"Results service: {RESULTS_API_URL}")
    print(f"Station will be at: http://{STATION_HOST}:{STATION_PORT}")
    print("\nPress Ctrl+C to stop the server")
    app.run(host=STATION_HOST, port=STATION_PORT)
