"""HTML templates for the polling station screens (rendered with render_template_string)."""

_HEAD = """<!DOCTYPE html>
<html>
<head>
    <title>{{ title }} - Polling Station</title>
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    {% block refresh %}{% endblock %}
    <style>
        body { font-family: -apple-system, 'Segoe UI', Roboto, Arial, sans-serif; background: #f8fafc; color: #1e293b; margin: 0; padding: 20px; }
        .container { max-width: 900px; margin: 0 auto; }
        .card { background: white; border: 1px solid #e2e8f0; border-radius: 8px; padding: 20px; margin: 15px 0; }
        .grid { display: grid; grid-template-columns: 1fr 1fr; gap: 20px; }
        .form-group { margin: 15px 0; }
        .form-group label { display: block; font-weight: 600; margin-bottom: 6px; }
        .form-group input { width: 100%; padding: 10px; font-size: 16px; box-sizing: border-box; }
        .btn { padding: 10px 20px; border: none; border-radius: 4px; cursor: pointer; font-size: 15px; background: #1f2937; color: white; text-decoration: none; display: inline-block; }
        .btn:disabled { opacity: 0.5; cursor: not-allowed; }
        .btn-success { background: #16a34a; }
        .btn-outline { background: transparent; color: #1f2937; border: 1px solid #1f2937; }
        .alert { border-radius: 4px; padding: 12px; margin: 12px 0; }
        .alert-info { background: #eff6ff; border: 1px solid #bfdbfe; color: #1e40af; }
        .alert-error { background: #fef2f2; border: 1px solid #fecaca; color: #991b1b; }
        .alert-warning { background: #fefce8; border: 1px solid #fde68a; color: #854d0e; }
        .alert-success { background: #f0fdf4; border: 1px solid #bbf7d0; color: #166534; }
        .badge { display: inline-block; padding: 3px 10px; border-radius: 12px; font-size: 13px; font-weight: 600; }
        .badge-eligible { background: #dcfce7; color: #166534; }
        .badge-already-voted { background: #ffedd5; color: #9a3412; }
        .badge-ineligible { background: #fee2e2; color: #991b1b; }
        .candidate { display: flex; align-items: center; justify-content: space-between; border: 2px solid #e2e8f0; border-radius: 8px; padding: 12px 16px; margin: 8px 0; }
        .candidate.selected { border-color: #1f2937; background: #f1f5f9; }
        .symbol { font-size: 32px; margin-right: 12px; }
        .muted { color: #64748b; font-size: 14px; }
        .center { text-align: center; }
        table { width: 100%; border-collapse: collapse; }
        th, td { border: 1px solid #e2e8f0; padding: 8px; text-align: left; }
        th { background: #1f2937; color: white; }
    </style>
</head>
<body>
<div class="container">
"""

_FOOT = """
</div>
</body>
</html>
"""

VALIDATION_TEMPLATE = _HEAD + """
    <h1>Voter Validation</h1>
    {% if error %}<div class="alert alert-error">{{ error }}</div>{% endif %}

    {% if voter and elections_error %}
    <div class="alert alert-error">Error loading active elections: {{ elections_error }}</div>
    {% elif voter and elections is not none and not elections %}
    <div class="alert alert-warning"><strong>No Elections Available</strong><br>
        There is no active election at this station. Please contact election officials.</div>
    {% elif voter and elections %}
    <div class="alert alert-success">Active election: <strong>{{ elections[0].name or elections[0].id }}</strong>
        {% if elections|length > 1 %}<br><span class="muted">+ {{ elections|length - 1 }} more election(s)</span>{% endif %}</div>
    {% endif %}

    {% if voter and not voter.has_district %}
    <div class="alert alert-error"><strong>District Information Missing</strong><br>
        The voter's electoral district is not on record. This is required for voting.</div>
    {% endif %}

    <div class="grid">
        <div class="card">
            <h2>Voter Lookup</h2>
            <form method="POST" action="{{ url_for('validate') }}" id="lookup-form">
                <div class="form-group">
                    <label for="nic">National Identity Card (NIC) Number</label>
                    <input id="nic" name="nic" type="text" placeholder="Enter NIC number (e.g., 123456789V)" autocomplete="off" required>
                </div>
                <div class="form-group">
                    <label for="password">Password</label>
                    <input id="password" name="password" type="password" required>
                </div>
                <button type="submit" class="btn" id="lookup-btn" style="width: 100%;">Search Voter</button>
            </form>
            <div class="alert alert-info" id="checking" style="display: none;">Searching voter database...</div>
            {% if validation_status == 'not-found' %}
            <div class="alert alert-error">Voter not found. Please verify the NIC number and password.</div>
            {% endif %}
        </div>

        <div class="card">
            <h2>Voter Profile</h2>
            {% if validation_status == 'found' and voter %}
            <h3>{{ voter.name }}</h3>
            {% if voter.name_with_initials %}<p class="muted">{{ voter.name_with_initials }}</p>{% endif %}
            <p><span class="badge badge-{{ voter.status.value }}">{{ status_labels[voter.status.value] }}</span></p>
            <p>Age: {{ voter.age or '-' }} | {{ voter.gender or '-' }}</p>
            {% if voter.address %}<p><strong>Address:</strong> {{ voter.address }}</p>{% endif %}
            <p><strong>District:</strong> {{ voter.district or '-' }}</p>
            <p><strong>Polling Division:</strong> {{ voter.polling_division or '-' }}</p>
            {% if voter.registration_date %}<p><strong>Registration Date:</strong> {{ voter.registration_date }}</p>{% endif %}
            {% if voter.status.value == 'already-voted' and voter.voted_at %}
            <div class="alert alert-warning"><strong>Voted At:</strong> {{ voter.voted_at }}</div>
            {% endif %}
            {% if voter.status.value == 'ineligible' and voter.ineligible_reason %}
            <div class="alert alert-error"><strong>Reason for Ineligibility:</strong> {{ voter.ineligible_reason }}</div>
            {% endif %}
            {% if voter.is_eligible and voter.has_district %}
            <form method="POST" action="{{ url_for('proceed') }}">
                <button type="submit" class="btn btn-success" style="width: 100%;">Proceed to Voting Booth</button>
            </form>
            {% endif %}
            {% else %}
            <p class="muted center">Enter NIC number to view voter profile</p>
            {% endif %}
        </div>
    </div>

    <script>
        document.getElementById('lookup-form').addEventListener('submit', function() {
            var btn = document.getElementById('lookup-btn');
            btn.disabled = true;
            btn.textContent = 'Searching...';
            document.getElementById('checking').style.display = 'block';
        });
    </script>
""" + _FOOT

BALLOT_TEMPLATE = _HEAD + """
    <div class="center">
        <h1>Cast Your Vote</h1>
        <p>Please select one candidate from the list below.</p>
    </div>
    {% if error %}<div class="alert alert-error">{{ error }}</div>{% endif %}

    {% if candidates_error %}
    <div class="card center">
        <h2>Error Loading Candidates</h2>
        <p class="alert alert-error">{{ candidates_error }}</p>
        <p class="muted">Election ID: {{ election_id }}</p>
        <form method="POST" action="{{ url_for('reset') }}"><button type="submit" class="btn">Return to Validation</button></form>
    </div>
    {% elif not candidates %}
    <div class="card center">
        <h2>No Candidates Available</h2>
        <p>There are no active candidates for this election.</p>
        <p class="muted">Election ID: {{ election_id }}</p>
        <form method="POST" action="{{ url_for('reset') }}"><button type="submit" class="btn">Return to Validation</button></form>
    </div>
    {% else %}
    {% for candidate in candidates %}
    <form method="POST" action="{{ url_for('select') }}">
        <input type="hidden" name="candidate_id" value="{{ candidate.candidate_id }}">
        <div class="candidate {% if selected and selected.candidate_id == candidate.candidate_id %}selected{% endif %}">
            <div style="display: flex; align-items: center;">
                <span class="symbol">{{ candidate.symbol or '🗳️' }}</span>
                <div>
                    <strong>{{ candidate.name }}</strong><br>
                    <span class="muted">{{ candidate.party or '' }}</span>
                </div>
            </div>
            <button type="submit" class="btn btn-outline">Select</button>
        </div>
    </form>
    {% endfor %}

    {% if selected %}
    <div class="card center">
        <h2>Selected Candidate</h2>
        <div class="symbol">{{ selected.symbol or '🗳️' }}</div>
        <p><strong>{{ selected.name }}</strong></p>
        <div style="display: flex; justify-content: center; gap: 12px;">
            <form method="POST" action="{{ url_for('reset_selection') }}"><button type="submit" class="btn btn-outline">Reset Selection</button></form>
            <form method="POST" action="{{ url_for('confirm') }}"><button type="submit" class="btn btn-success">Confirm Vote</button></form>
        </div>
    </div>
    {% endif %}
    {% endif %}
""" + _FOOT

CONFIRMATION_TEMPLATE = _HEAD + """
    <div class="card center" style="max-width: 480px; margin: 40px auto;">
        <h1>Confirm Your Vote</h1>
        <div class="card">
            <div class="symbol">{{ candidate.symbol or '🗳️' }}</div>
            <h3>{{ candidate.name }}</h3>
            {% if candidate.party %}<p>{{ candidate.party }}</p>{% endif %}
            {% if candidate.symbol_name %}<p class="muted">Symbol: {{ candidate.symbol_name }}</p>{% endif %}
        </div>
        <p><strong>Are you sure you want to vote for this candidate?</strong></p>
        <p class="muted">This action cannot be undone.</p>

        {% if error %}<div class="alert alert-error" id="cast-error">{{ error }}</div>{% endif %}

        <div style="display: flex; justify-content: center; gap: 12px;">
            <form method="POST" action="{{ url_for('back') }}">
                <button type="submit" class="btn btn-outline" id="back-btn">No, Go Back</button>
            </form>
            <form method="POST" action="{{ url_for('submit') }}" id="submit-form">
                <button type="submit" class="btn btn-success" id="submit-btn">{% if error %}Try Again{% else %}Yes, Confirm Vote{% endif %}</button>
            </form>
        </div>
    </div>

    <script>
        document.getElementById('submit-form').addEventListener('submit', function(e) {
            var btn = document.getElementById('submit-btn');
            if (btn.disabled) {
                e.preventDefault();
                return;
            }
            btn.disabled = true;
            btn.textContent = 'Submitting Vote...';
            document.getElementById('back-btn').disabled = true;
        });
    </script>
""" + _FOOT

SUCCESS_TEMPLATE = (_HEAD + """
    <div class="card center" style="max-width: 480px; margin: 40px auto;">
        <h1 style="color: #166534;">Vote Successfully Cast!</h1>
        <p>Your vote has been recorded securely.</p>
        <p class="muted">Thank you for participating in the democratic process.</p>

        <div class="alert alert-info">
            Automatically returning to voter search in:
            <h2 id="countdown">{{ ticks[0] }} second{% if ticks[0] != 1 %}s{% endif %}</h2>
        </div>

        <form method="POST" id="reset-form" action="{{ url_for('reset') }}">
            <button type="submit" class="btn btn-outline" style="width: 100%;">Return to Validation</button>
        </form>
    </div>

    <script>
        (function() {
            var ticks = {{ ticks|tojson }};
            var index = 0;
            var label = document.getElementById('countdown');
            var timer = setInterval(function() {
                index += 1;
                if (index >= ticks.length) {
                    clearInterval(timer);
                    document.getElementById('reset-form').submit();
                    return;
                }
                label.textContent = ticks[index] + ' second' + (ticks[index] !== 1 ? 's' : '');
            }, 1000);
            window.addEventListener('pagehide', function() { clearInterval(timer); });
        })();
    </script>
""" + _FOOT).replace(
    "{% block refresh %}{% endblock %}",
    '<noscript><meta http-equiv="refresh" content="{{ ticks|length }};url={{ url_for(\'reset\') }}"></noscript>',
)

RESULTS_TEMPLATE = _HEAD + """
    {% if error %}
    <h1>Election Results</h1>
    <div class="alert alert-error">Error loading results: {{ error }}</div>
    {% else %}
    <h1>Election Results: {{ summary.election_name or summary.election_id }}</h1>
    <div class="card">
        <p><strong>Total Votes:</strong> {{ summary.total_votes }}</p>
        {% if summary.last_updated %}<p class="muted">Last updated: {{ summary.last_updated }}</p>{% endif %}
    </div>

    <div class="card">
        <h3>Candidates</h3>
        {% if summary.candidates %}
        <table>
            <thead><tr><th>Candidate</th><th>Party</th><th>Votes</th><th>Share</th></tr></thead>
            <tbody>
            {% for c in summary.candidates %}
                <tr><td>{{ c.candidate_name }}</td><td>{{ c.party_name or '-' }}</td><td>{{ c.popular_votes }}</td><td>{{ '%.2f'|format(summary.vote_share(c)) }}%</td></tr>
            {% endfor %}
            </tbody>
        </table>
        {% else %}
        <p class="muted">No votes counted yet.</p>
        {% endif %}
    </div>

    {% if summary.districts %}
    <div class="card">
        <h3>Districts</h3>
        <table>
            <thead><tr><th>District</th><th>Candidate</th><th>Votes</th><th>Winner</th></tr></thead>
            <tbody>
            {% for d in summary.districts %}
                <tr><td>{{ d.district_code }}</td><td>{{ d.candidate_id or '-' }}</td><td>{{ d.votes_received }}</td><td>{{ d.winner or '-' }}</td></tr>
            {% endfor %}
            </tbody>
        </table>
    </div>
    {% endif %}
    {% endif %}
""" + _FOOT

STATUS_LABELS = {
    'eligible': 'Eligible to Vote',
    'already-voted': 'Already Voted',
    'ineligible': 'Ineligible',
}
