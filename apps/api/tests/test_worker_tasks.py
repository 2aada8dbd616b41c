import httpx

from worker import tasks


def test_invitation_email_logged_without_smtp(monkeypatch):
    monkeypatch.delenv("SMTP_HOST", raising=False)

    result = tasks.send_invitation_email(
        to_email="bob@example.com",
        family_name="Household",
        inviter_name="Alice",
        role="Member",
        token="a" * 64,
        accept_link="http://localhost:3000/accept-invite?token=" + "a" * 64,
    )

    assert result == {"job": "invitation_email", "status": "logged", "to": "bob@example.com"}


def test_render_invitation_email_mentions_link():
    subject, body = tasks.render_invitation_email("Household", "Alice", "Admin", "http://x/accept-invite?token=t")
    assert subject == "Alice invited you to join Household"
    assert "as Admin" in body
    assert "http://x/accept-invite?token=t" in body


def test_generation_job_skips_without_token(monkeypatch):
    monkeypatch.delenv("INTERNAL_ADMIN_TOKEN", raising=False)
    assert tasks.generate_recurring_task_instances()["status"] == "skipped"


def test_generation_job_calls_admin_endpoint(monkeypatch):
    calls = []

    def fake_post(url, headers, timeout):
        calls.append((url, headers))
        return httpx.Response(200, json={"instances_created": 2}, request=httpx.Request("POST", url))

    monkeypatch.setenv("INTERNAL_ADMIN_TOKEN", "secret")
    monkeypatch.setenv("FAMIFIRST_API_BASE_URL", "http://api.test/v1/")
    monkeypatch.setattr(tasks.httpx, "post", fake_post)

    result = tasks.generate_recurring_task_instances()

    assert result == {"job": "recurring_task_generation", "status": "ok", "result": {"instances_created": 2}}
    assert calls == [("http://api.test/v1/admin/recurrence/run", {"X-Internal-Admin-Token": "secret"})]


def test_generation_job_reports_http_errors(monkeypatch):
    def failing_post(url, headers, timeout):
        raise httpx.ConnectError("connection refused")

    monkeypatch.setenv("INTERNAL_ADMIN_TOKEN", "secret")
    monkeypatch.setattr(tasks.httpx, "post", failing_post)

    result = tasks.generate_recurring_task_instances()

    assert result["status"] == "error"
    assert "connection refused" in result["error"]
