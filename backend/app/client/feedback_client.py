"""
反馈系统 HTTP 客户端
---------------------------------
功能：
- 封装 /api/auth、/api/feedback、/api/admin 接口
- 登录态保存在显式的 ClientSession 对象中，每次调用时传入（不依赖全局状态）
- 非 2xx 响应抛出 ApiClientError（携带状态码与服务端 message）

使用：
async with FeedbackClient("http://localhost:8000") as client:
    session = await client.login("alice@example.com", "Secret#123")
    await client.submit_feedback(session, subject="Algorithms", teacher=2,
                                 feedback_text="Great pace", rating=5)
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

import httpx


class ApiClientError(Exception):
    """接口返回错误"""

    def __init__(self, status_code: int, message: str):
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message


@dataclass
class ClientSession:
    """一次登录得到的会话：token 与账号摘要"""
    token: str
    user: Dict[str, Any] = field(default_factory=dict)

    @property
    def role(self) -> Optional[str]:
        return self.user.get("role")

    @property
    def headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"}


# (文件名, 内容, MIME 类型)
ImageFile = Tuple[str, bytes, str]


class FeedbackClient:
    """异步 HTTP 客户端"""

    def __init__(self, base_url: str, transport: Optional[httpx.AsyncBaseTransport] = None, timeout: float = 30.0):
        self._http = httpx.AsyncClient(base_url=base_url, transport=transport, timeout=timeout)

    async def __aenter__(self) -> "FeedbackClient":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _request(self, method: str, path: str, session: Optional[ClientSession] = None, **kwargs) -> Any:
        headers = dict(kwargs.pop("headers", {}) or {})
        if session is not None:
            headers.update(session.headers)
        response = await self._http.request(method, path, headers=headers, **kwargs)
        # 会话只由 ClientSession 携带，不保留服务端下发的 Cookie
        self._http.cookies.clear()

        try:
            body = response.json()
        except ValueError:
            body = {"message": response.text}

        if response.is_error:
            raise ApiClientError(response.status_code, body.get("message", response.reason_phrase))
        return body.get("data")

    @staticmethod
    def _form(fields: Dict[str, Any]) -> Dict[str, str]:
        form = {}
        for key, value in fields.items():
            if value is None:
                continue
            form[key] = str(value).lower() if isinstance(value, bool) else str(value)
        return form

    @staticmethod
    def _files(images: Optional[Sequence[ImageFile]]) -> Optional[List[Tuple[str, ImageFile]]]:
        if not images:
            return None
        return [("images", image) for image in images]

    # ------------------------------------------------------------------
    # 认证
    # ------------------------------------------------------------------

    async def register(self, name: str, email: str, password: str) -> ClientSession:
        data = await self._request("POST", "/api/auth/register", json={"name": name, "email": email, "password": password})
        token = data.pop("token")
        return ClientSession(token=token, user=data)

    async def login(self, email: str, password: str) -> ClientSession:
        data = await self._request("POST", "/api/auth/login", json={"email": email, "password": password})
        token = data.pop("token")
        return ClientSession(token=token, user=data)

    async def logout(self, session: ClientSession) -> None:
        await self._request("POST", "/api/auth/logout", session)

    async def me(self, session: ClientSession) -> Dict[str, Any]:
        return await self._request("GET", "/api/auth/me", session)

    async def teacher_roster(self) -> List[Dict[str, Any]]:
        return await self._request("GET", "/api/auth/teachers")

    # ------------------------------------------------------------------
    # 学生
    # ------------------------------------------------------------------

    async def submit_feedback(self, session: ClientSession, **fields) -> int:
        data = await self._request("POST", "/api/feedback/submit", session, json=fields)
        return data["feedback_id"]

    async def submit_feedback_with_images(
        self, session: ClientSession, images: Optional[Sequence[ImageFile]] = None, **fields
    ) -> int:
        data = await self._request(
            "POST", "/api/feedback/submit-image", session,
            data=self._form(fields), files=self._files(images)
        )
        return data["feedback_id"]

    async def save_draft(
        self,
        session: ClientSession,
        feedback_id: Optional[int] = None,
        images: Optional[Sequence[ImageFile]] = None,
        **fields
    ) -> Dict[str, Any]:
        """feedback_id 为空时新建草稿，否则更新"""
        if feedback_id is None:
            method, path = "POST", "/api/feedback/save-draft"
        else:
            method, path = "PUT", f"/api/feedback/save-draft/{feedback_id}"
        return await self._request(method, path, session, data=self._form(fields), files=self._files(images))

    async def submit_draft(self, session: ClientSession, feedback_id: int) -> Dict[str, Any]:
        return await self._request("PUT", f"/api/feedback/submit-draft/{feedback_id}", session)

    async def delete_feedback(self, session: ClientSession, feedback_id: int) -> None:
        await self._request("DELETE", f"/api/feedback/delete/{feedback_id}", session)

    async def my_feedbacks(self, session: ClientSession) -> List[Dict[str, Any]]:
        return await self._request("GET", "/api/feedback/my-feedbacks", session)

    async def my_drafts(self, session: ClientSession) -> List[Dict[str, Any]]:
        return await self._request("GET", "/api/feedback/drafts", session)

    # ------------------------------------------------------------------
    # 教师 / 管理员
    # ------------------------------------------------------------------

    async def teacher_inbox(self, session: ClientSession) -> List[Dict[str, Any]]:
        return await self._request("GET", "/api/feedback/teacher", session)

    async def respond(self, session: ClientSession, feedback_id: int, reply: str) -> Dict[str, Any]:
        return await self._request("PUT", f"/api/feedback/respond/{feedback_id}", session, json={"reply": reply})

    async def all_feedbacks(
        self,
        session: ClientSession,
        subject: Optional[str] = None,
        status: Optional[str] = None,
        student_name: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        params = {k: v for k, v in {"subject": subject, "status": status, "student_name": student_name}.items() if v}
        return await self._request("GET", "/api/feedback/all", session, params=params)

    async def set_status(self, session: ClientSession, feedback_id: int, status: str) -> Dict[str, Any]:
        return await self._request("PUT", f"/api/feedback/status/{feedback_id}", session, json={"status": status})

    async def toggle_block(self, session: ClientSession, user_id: int) -> bool:
        data = await self._request("PUT", f"/api/auth/toggle-block/{user_id}", session)
        return data["is_blocked"]

    async def list_users(self, session: ClientSession, include_admins: bool = False) -> List[Dict[str, Any]]:
        params = {"include_admins": "true"} if include_admins else None
        return await self._request("GET", "/api/auth/users", session, params=params)

    async def list_teachers(self, session: ClientSession) -> List[Dict[str, Any]]:
        return await self._request("GET", "/api/admin/teachers", session)
