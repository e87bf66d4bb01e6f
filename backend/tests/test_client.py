"""FeedbackClient against the in-process app."""

import pytest
import pytest_asyncio
from httpx import ASGITransport

from app.client.feedback_client import ApiClientError, ClientSession, FeedbackClient
from app.main import app

PASSWORD = "Secret@123"


@pytest_asyncio.fixture
async def api(session_factory):
    async with FeedbackClient("http://test", transport=ASGITransport(app=app)) as client:
        yield client


async def test_student_teacher_admin_flow(api, student, teacher, admin):
    alice = await api.login("alice@example.com", PASSWORD)
    tom = await api.login("tom@example.com", PASSWORD)
    ada = await api.login("ada@example.com", PASSWORD)
    assert isinstance(alice, ClientSession)
    assert (alice.role, tom.role, ada.role) == ("student", "teacher", "admin")

    roster = await api.teacher_roster()
    teacher_id = roster[0]["id"]

    feedback_id = await api.submit_feedback(
        alice, subject="Algorithms", teacher=teacher_id, feedback_text="Great pace", rating=5
    )
    inbox = await api.teacher_inbox(tom)
    assert [f["id"] for f in inbox] == [feedback_id]

    replied = await api.respond(tom, feedback_id, "Thanks, noted")
    assert replied["status"] == "Responded"

    resolved = await api.set_status(ada, feedback_id, "Resolved")
    assert resolved["status"] == "Resolved"
    assert resolved["reply"] == "Thanks, noted"

    mine = await api.my_feedbacks(alice)
    assert mine[0]["status"] == "Resolved"
    assert await api.all_feedbacks(ada, status="Resolved") == mine


async def test_sessions_do_not_leak_between_calls(api, student, teacher):
    alice = await api.login("alice@example.com", PASSWORD)
    await api.login("tom@example.com", PASSWORD)

    # a later login must not change who the earlier session acts as
    me = await api.me(alice)
    assert me["email"] == "alice@example.com"


async def test_draft_flow_with_images(api, student, teacher):
    alice = await api.login("alice@example.com", PASSWORD)
    png = ("board.png", b"\x89PNG\r\n\x1a\n" + b"\x00" * 32, "image/png")

    draft = await api.save_draft(alice, subject="Databases", is_anonymous=True, images=[png])
    assert draft["status"] == "Draft"
    assert len(draft["images"]) == 1

    draft = await api.save_draft(
        alice, feedback_id=draft["id"], subject="Databases", teacher=teacher.id,
        feedback_text="Indexes finally clicked", rating=4
    )
    assert draft["teacher"]["id"] == teacher.id
    assert len(draft["images"]) == 1

    assert [d["id"] for d in await api.my_drafts(alice)] == [draft["id"]]
    submitted = await api.submit_draft(alice, draft["id"])
    assert submitted["status"] == "Pending"
    assert await api.my_drafts(alice) == []

    await api.delete_feedback(alice, draft["id"])
    assert await api.my_feedbacks(alice) == []


async def test_submit_with_images(api, student, teacher):
    alice = await api.login("alice@example.com", PASSWORD)
    png = ("a.png", b"\x89PNG\r\n\x1a\n", "image/png")
    feedback_id = await api.submit_feedback_with_images(
        alice, images=[png], subject="Art", teacher=teacher.id, feedback_text="Nice", rating=4
    )
    mine = await api.my_feedbacks(alice)
    assert mine[0]["id"] == feedback_id
    assert len(mine[0]["images"]) == 1


async def test_errors_carry_status_and_message(api, student, admin):
    with pytest.raises(ApiClientError) as excinfo:
        await api.login("alice@example.com", "Wrong@1234")
    assert excinfo.value.status_code == 401
    assert excinfo.value.message == "Invalid credentials"

    alice = await api.login("alice@example.com", PASSWORD)
    with pytest.raises(ApiClientError) as excinfo:
        await api.all_feedbacks(alice)
    assert excinfo.value.status_code == 403
    assert excinfo.value.message == "Admin/Teacher access only"


async def test_admin_account_management(api, student, teacher, admin):
    ada = await api.login("ada@example.com", PASSWORD)

    users = await api.list_users(ada)
    assert {u["email"] for u in users} == {"alice@example.com", "tom@example.com"}
    assert len(await api.list_users(ada, include_admins=True)) == 3

    assert await api.toggle_block(ada, student.id) is True
    with pytest.raises(ApiClientError) as excinfo:
        await api.login("alice@example.com", PASSWORD)
    assert excinfo.value.status_code == 403
    assert await api.toggle_block(ada, student.id) is False

    teachers = await api.list_teachers(ada)
    assert teachers[0]["role"] == "teacher"


async def test_register_and_logout(api):
    nina = await api.register("Nina Newcomer", "nina@example.com", "Passw0rd!")
    assert nina.role == "student"
    assert (await api.me(nina))["name"] == "Nina Newcomer"
    await api.logout(nina)
