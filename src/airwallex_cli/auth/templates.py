"""HTML pages served by the local setup server.

Pages are plain :class:`string.Template` strings. Every substituted value is
HTML-escaped by the ``render_*`` helpers; the templates themselves avoid
``$`` outside of placeholders.
"""

from __future__ import annotations

import html
from string import Template

_STYLE = """
    <style>
        :root { --fg: #1f2933; --muted: #616e7c; --accent: #612fff; --ok: #0e7c4a; --err: #c62828; }
        * { box-sizing: border-box; }
        body { margin: 0; min-height: 100vh; display: flex; align-items: center; justify-content: center;
               font-family: -apple-system, BlinkMacSystemFont, "Segoe UI", Roboto, sans-serif;
               background: #f5f7fa; color: var(--fg); }
        .card { width: 100%; max-width: 440px; background: #fff; border-radius: 12px; padding: 2rem;
                box-shadow: 0 10px 30px rgba(0, 0, 0, 0.08); }
        h1 { font-size: 1.35rem; margin: 0 0 0.25rem; }
        p.lead { color: var(--muted); margin: 0 0 1.5rem; }
        label { display: block; font-weight: 600; font-size: 0.85rem; margin: 1rem 0 0.35rem; }
        .hint { color: var(--muted); font-size: 0.75rem; margin-top: 0.25rem; }
        input { width: 100%; padding: 0.6rem 0.75rem; border: 1px solid #cbd2d9; border-radius: 8px;
                font-family: ui-monospace, SFMono-Regular, Menlo, monospace; font-size: 0.9rem; }
        .actions { display: flex; gap: 0.75rem; margin-top: 1.5rem; }
        button { flex: 1; padding: 0.65rem; border-radius: 8px; border: 1px solid var(--accent);
                 font-weight: 600; cursor: pointer; background: #fff; color: var(--accent); }
        button.primary { background: var(--accent); color: #fff; }
        button:disabled { opacity: 0.5; cursor: default; }
        #status { display: none; margin-top: 1rem; padding: 0.75rem; border-radius: 8px; font-size: 0.9rem; }
        #status.success { display: block; background: #e6f4ea; color: var(--ok); }
        #status.error { display: block; background: #fdecea; color: var(--err); }
        #status.loading { display: block; background: #eef2ff; color: var(--accent); }
        .account { display: inline-block; margin-top: 1rem; padding: 0.4rem 0.8rem; border-radius: 999px;
                   background: #eef2ff; font-family: ui-monospace, SFMono-Regular, Menlo, monospace; }
        code { background: #f0f2f5; padding: 0.15rem 0.4rem; border-radius: 4px; }
    </style>
"""

SETUP_TEMPLATE = Template(
    """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1">
    <title>Airwallex CLI Setup</title>
"""
    + _STYLE
    + """
</head>
<body>
    <div class="card">
        <h1>Connect your Airwallex account</h1>
        <p class="lead">Credentials are checked against the API and stored locally.</p>
        <form id="setupForm" autocomplete="off">
            <label for="accountName">Account name</label>
            <input type="text" id="accountName" placeholder="e.g. production, sandbox" required autofocus>
            <div class="hint">Letters, numbers, dash and underscore only.</div>

            <label for="clientId">Client ID</label>
            <input type="text" id="clientId" placeholder="Your Airwallex Client ID" required>

            <label for="apiKey">API key</label>
            <input type="password" id="apiKey" placeholder="Your Airwallex API Key" required>

            <label for="accountId">Account ID (optional)</label>
            <input type="text" id="accountId" placeholder="acct_xxxxxxxxxxxxxxxxxx">
            <div class="hint">Only needed when the API key can access several accounts.</div>

            <div class="actions">
                <button type="button" id="testBtn">Test connection</button>
                <button type="submit" id="submitBtn" class="primary">Save &amp; continue</button>
            </div>
            <div id="status"></div>
        </form>
    </div>
    <script>
        const csrfToken = '$csrf_token';
        const form = document.getElementById('setupForm');
        const testBtn = document.getElementById('testBtn');
        const submitBtn = document.getElementById('submitBtn');
        const status = document.getElementById('status');

        function showStatus(type, message) {
            status.className = type;
            status.textContent = message;
        }

        function formData() {
            return {
                account_name: document.getElementById('accountName').value.trim(),
                client_id: document.getElementById('clientId').value.trim(),
                api_key: document.getElementById('apiKey').value.trim(),
                account_id: document.getElementById('accountId').value.trim()
            };
        }

        async function post(path, data) {
            const response = await fetch(path, {
                method: 'POST',
                headers: { 'Content-Type': 'application/json', 'X-CSRF-Token': csrfToken },
                body: JSON.stringify(data)
            });
            if (response.status === 403) {
                return { success: false, error: 'Session expired, restart the CLI login.' };
            }
            return response.json();
        }

        function setBusy(busy) {
            testBtn.disabled = busy;
            submitBtn.disabled = busy;
        }

        testBtn.addEventListener('click', async () => {
            setBusy(true);
            showStatus('loading', 'Testing connection...');
            try {
                const result = await post('/validate', formData());
                if (result.success) {
                    showStatus('success', result.message || 'Connection successful!');
                } else {
                    showStatus('error', result.error || 'Validation failed');
                }
            } catch (err) {
                showStatus('error', 'Request failed: ' + err.message);
            } finally {
                setBusy(false);
            }
        });

        form.addEventListener('submit', async (event) => {
            event.preventDefault();
            setBusy(true);
            showStatus('loading', 'Saving credentials...');
            try {
                const result = await post('/submit', formData());
                if (result.success) {
                    window.location.href = '/success';
                    return;
                }
                showStatus('error', result.error || 'Could not save credentials');
            } catch (err) {
                showStatus('error', 'Request failed: ' + err.message);
            }
            setBusy(false);
        });
    </script>
</body>
</html>
"""
)

SUCCESS_TEMPLATE = Template(
    """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1">
    <title>Airwallex CLI Setup Complete</title>
"""
    + _STYLE
    + """
</head>
<body>
    <div class="card">
        <h1>You're all set</h1>
        <p class="lead">Your credentials were saved. You can close this window and return to the terminal.</p>
        $account_block
        <p class="hint">Check them any time with <code>airwallex auth test &lt;name&gt;</code>.</p>
    </div>
    <script>fetch('/complete', { method: 'POST', headers: { 'X-CSRF-Token': '$csrf_token' } }).catch(() => {});</script>
</body>
</html>
"""
)


def render_setup_page(csrf_token: str) -> str:
    """Render the credential form with *csrf_token* embedded for its requests."""
    return SETUP_TEMPLATE.substitute(csrf_token=html.escape(csrf_token, quote=True))


def render_success_page(account_name: str, csrf_token: str) -> str:
    """Render the completion page.

    *account_name* must come from server-held state; an empty name omits the
    account badge.
    """
    account_block = ""
    if account_name:
        account_block = f'<span class="account">{html.escape(account_name, quote=True)}</span>'
    return SUCCESS_TEMPLATE.substitute(
        account_block=account_block,
        csrf_token=html.escape(csrf_token, quote=True),
    )
