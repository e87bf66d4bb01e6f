"""Registration, login, account management and teacher administration."""

import pytest
from sqlalchemy import select

from app.models.user import User, UserRole
from app.services.account_service import account_service
from app.services.auth_service import verify_password
from app.utils.errors import NotFoundError

PASSWORD = "Secret@123"


class TestRegisterAndLogin:

    async def test_register_sets_cookie_and_returns_student(self, client):
        response = await client.post(
            "/api/auth/register",
            json={"name": "  Nina Newcomer ", "email": "Nina@Example.com", "password": "Passw0rd!"},
        )
        assert response.status_code == 201, response.text
        body = response.json()
        assert body["code"] == 201
        data = body["data"]
        assert data["name"] == "Nina Newcomer"
        assert data["email"] == "nina@example.com"
        assert data["role"] == "student"
        assert data["token"]
        assert "hashed_password" not in data

        set_cookie = response.headers["set-cookie"]
        assert set_cookie.startswith("jwt=")
        assert "httponly" in set_cookie.lower()
        assert "samesite=strict" in set_cookie.lower()

        client.cookies.clear()
        me = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {data['token']}"})
        assert me.json()["data"]["email"] == "nina@example.com"

    async def test_duplicate_email(self, client, student):
        response = await client.post(
            "/api/auth/register",
            json={"name": "Another Alice", "email": "ALICE@example.com", "password": "Passw0rd!"},
        )
        assert response.status_code == 400
        assert response.json()["message"] == "User already exists"

    @pytest.mark.parametrize("password", ["short1!", "alllowercase1!", "NoDigits!!", "NoSpecial123", "É" * 40 + "a1!"])
    async def test_weak_password(self, client, password):
        response = await client.post(
            "/api/auth/register", json={"name": "Weak Pw", "email": "weak@example.com", "password": password}
        )
        assert response.status_code == 400
        assert response.json()["message"].startswith("Invalid input: password")

    async def test_short_name(self, client):
        response = await client.post(
            "/api/auth/register", json={"name": " a ", "email": "a@example.com", "password": "Passw0rd!"}
        )
        assert response.status_code == 400

    async def test_login(self, client, student):
        response = await client.post("/api/auth/login", json={"email": "alice@example.com", "password": PASSWORD})
        assert response.status_code == 200
        assert response.json()["data"]["id"] == student.id
        assert "jwt" in response.cookies

        # the cookie alone authenticates
        me = await client.get("/api/auth/me")
        assert me.json()["data"]["id"] == student.id

    async def test_login_wrong_password(self, client, student):
        response = await client.post("/api/auth/login", json={"email": "alice@example.com", "password": "Wrong@123"})
        assert response.status_code == 401
        assert response.json()["message"] == "Invalid credentials"

    async def test_login_unknown_email(self, client):
        response = await client.post("/api/auth/login", json={"email": "ghost@example.com", "password": PASSWORD})
        assert response.status_code == 401

    async def test_blocked_account_cannot_login(self, client, make_user):
        await make_user("Barry Blocked", "barry@example.com", blocked=True)
        response = await client.post("/api/auth/login", json={"email": "barry@example.com", "password": PASSWORD})
        assert response.status_code == 403
        assert response.json()["message"] == "Your account has been blocked by admin"

    async def test_logout_clears_cookie(self, client, student):
        await client.post("/api/auth/login", json={"email": "alice@example.com", "password": PASSWORD})
        response = await client.post("/api/auth/logout")
        assert response.status_code == 200
        assert 'jwt=""' in response.headers["set-cookie"] or "jwt=;" in response.headers["set-cookie"]

        me = await client.get("/api/auth/me")
        assert me.status_code == 401


class TestTeacherRoster:

    async def test_public_roster(self, client, teacher, other_teacher, student):
        response = await client.get("/api/auth/teachers")
        assert response.status_code == 200
        roster = response.json()["data"]
        assert [t["name"] for t in roster] == ["Tina Teacher", "Tom Teacher"]
        assert set(roster[0]) == {"id", "name", "email", "profile_image"}


class TestUserAdministration:

    async def test_users_excludes_admins_by_default(self, client, student, teacher, admin, headers_for):
        response = await client.get("/api/auth/users", headers=headers_for(admin))
        emails = {u["email"] for u in response.json()["data"]}
        assert emails == {"alice@example.com", "tom@example.com"}

        response = await client.get("/api/auth/users", params={"include_admins": True}, headers=headers_for(admin))
        assert "ada@example.com" in {u["email"] for u in response.json()["data"]}

    async def test_student_cannot_list_users(self, client, student, headers_for):
        response = await client.get("/api/auth/users", headers=headers_for(student))
        assert response.status_code == 403

    async def test_toggle_block_round_trip(self, client, student, admin, headers_for):
        first = await client.put(f"/api/auth/toggle-block/{student.id}", headers=headers_for(admin))
        assert first.json()["data"] == {"is_blocked": True}
        assert (await client.get("/api/auth/me", headers=headers_for(student))).status_code == 403

        second = await client.put(f"/api/auth/toggle-block/{student.id}", headers=headers_for(admin))
        assert second.json()["data"] == {"is_blocked": False}
        assert (await client.get("/api/auth/me", headers=headers_for(student))).status_code == 200

    async def test_teacher_can_toggle_block(self, client, student, teacher, headers_for):
        response = await client.put(f"/api/auth/toggle-block/{student.id}", headers=headers_for(teacher))
        assert response.status_code == 200
        assert response.json()["data"]["is_blocked"] is True

    async def test_cannot_block_self(self, client, admin, headers_for):
        response = await client.put(f"/api/auth/toggle-block/{admin.id}", headers=headers_for(admin))
        assert response.status_code == 403

    async def test_toggle_block_unknown_user(self, client, admin, headers_for):
        response = await client.put("/api/auth/toggle-block/9999", headers=headers_for(admin))
        assert response.status_code == 404

    async def test_update_user(self, client, student, admin, headers_for):
        response = await client.put(
            f"/api/auth/users/{student.id}",
            json={"name": "Alice Renamed", "email": "Alice.New@example.com", "is_blocked": True},
            headers=headers_for(admin),
        )
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["name"] == "Alice Renamed"
        assert data["email"] == "alice.new@example.com"
        assert data["is_blocked"] is True

    async def test_update_user_email_conflict(self, client, student, other_student, admin, headers_for):
        response = await client.put(
            f"/api/auth/users/{student.id}", json={"email": "bob@example.com"}, headers=headers_for(admin)
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Email already in use"

    async def test_teacher_cannot_change_blocked_flag_via_update(self, client, student, teacher, headers_for):
        response = await client.put(
            f"/api/auth/users/{student.id}", json={"is_blocked": True}, headers=headers_for(teacher)
        )
        assert response.status_code == 403

    async def test_cannot_update_self(self, client, admin, headers_for):
        response = await client.put(f"/api/auth/users/{admin.id}", json={"name": "Ada Again"}, headers=headers_for(admin))
        assert response.status_code == 403


class TestTeacherAdministration:

    async def test_projection_depends_on_caller(self, client, teacher, admin, headers_for):
        as_admin = (await client.get("/api/admin/teachers", headers=headers_for(admin))).json()["data"]
        as_teacher = (await client.get("/api/admin/teachers", headers=headers_for(teacher))).json()["data"]

        assert set(as_teacher[0]) == {"id", "name", "email", "is_blocked"}
        assert {"role", "profile_image", "created_at"} <= set(as_admin[0])
        assert as_admin[0]["id"] == as_teacher[0]["id"] == teacher.id

    async def test_update_teacher(self, client, teacher, admin, headers_for):
        response = await client.put(
            f"/api/admin/teachers/{teacher.id}", json={"name": "Thomas Teacher"}, headers=headers_for(admin)
        )
        assert response.status_code == 200
        assert response.json()["data"]["name"] == "Thomas Teacher"

    async def test_teacher_cannot_update_self_via_teacher_route(self, client, db, teacher, headers_for):
        response = await client.put(
            f"/api/admin/teachers/{teacher.id}", json={"email": "new@example.com"}, headers=headers_for(teacher)
        )
        assert response.status_code == 403
        assert response.json()["message"] == "You cannot modify your own account here"

        stored = (
            await db.execute(select(User).where(User.id == teacher.id).execution_options(populate_existing=True))
        ).scalar_one()
        assert stored.email == "tom@example.com"

    async def test_admin_cannot_update_self_via_teacher_route(self, client, admin, headers_for):
        response = await client.put(
            f"/api/admin/teachers/{admin.id}", json={"name": "Ada Again"}, headers=headers_for(admin)
        )
        assert response.status_code == 403

    @pytest.mark.parametrize("route", ["/api/admin/teachers", "/api/auth/users"])
    async def test_teacher_cannot_change_blocked_flag(self, client, teacher, other_teacher, headers_for, route):
        response = await client.put(
            f"{route}/{other_teacher.id}", json={"is_blocked": True}, headers=headers_for(teacher)
        )
        assert response.status_code == 403
        assert response.json()["message"] == "Only admins can change the blocked flag"

    async def test_teacher_can_rename_another_teacher(self, client, teacher, other_teacher, headers_for):
        response = await client.put(
            f"/api/admin/teachers/{other_teacher.id}", json={"name": "Tina Taylor"}, headers=headers_for(teacher)
        )
        assert response.status_code == 200
        assert response.json()["data"]["name"] == "Tina Taylor"

    async def test_admin_can_block_teacher(self, client, teacher, admin, headers_for):
        response = await client.put(
            f"/api/admin/teachers/{teacher.id}", json={"is_blocked": True}, headers=headers_for(admin)
        )
        assert response.status_code == 200
        assert response.json()["data"]["is_blocked"] is True
        assert (await client.get("/api/auth/me", headers=headers_for(teacher))).status_code == 403

    async def test_update_non_teacher_is_not_found(self, client, student, admin, headers_for):
        response = await client.put(
            f"/api/admin/teachers/{student.id}", json={"name": "Not A Teacher"}, headers=headers_for(admin)
        )
        assert response.status_code == 404
        assert response.json()["message"] == "Teacher not found"

    async def test_delete_teacher(self, client, teacher, admin, headers_for):
        response = await client.delete(f"/api/admin/teachers/{teacher.id}", headers=headers_for(admin))
        assert response.status_code == 200
        assert response.json()["message"] == "Teacher removed"

        again = await client.delete(f"/api/admin/teachers/{teacher.id}", headers=headers_for(admin))
        assert again.status_code == 404

    async def test_teacher_cannot_delete_teacher(self, client, teacher, other_teacher, headers_for):
        response = await client.delete(f"/api/admin/teachers/{other_teacher.id}", headers=headers_for(teacher))
        assert response.status_code == 403
        assert response.json()["message"] == "Admin access only"


async def test_set_role(db, student):
    user = await account_service.set_role("ALICE@example.com", UserRole.TEACHER, db)
    assert user.role is UserRole.TEACHER

    stored = (await db.execute(select(User).where(User.id == student.id))).scalar_one()
    assert stored.is_teacher


async def test_set_role_unknown_email(db):
    with pytest.raises(NotFoundError):
        await account_service.set_role("ghost@example.com", UserRole.ADMIN, db)


async def test_register_hashes_password(db):
    user = await account_service.register("Hash Check", "hash@example.com", "Passw0rd!", db)
    assert user.hashed_password != "Passw0rd!"
    assert verify_password("Passw0rd!", user.hashed_password)
