"""
邮件服务
---------------------------------
功能：
- 通过 SMTP（STARTTLS）发送 HTML 邮件
- 提供找回密码邮件模板

使用：
- await get_email_service().send_async(to, subject, html)
- SMTP 未配置或发送失败时抛出 EmailDeliveryError
"""

import asyncio
import smtplib
from email.message import EmailMessage

from ..config import settings
from ..utils.logger import log


class EmailDeliveryError(Exception):
    """邮件发送失败"""


def password_reset_email(reset_link: str) -> str:
    """找回密码邮件 HTML"""
    return f"""
    <div style="font-family: Arial, sans-serif;">
      <h2 style="color: #e53935;">Reset Your Password</h2>
      <p>Click the link below. It expires in {settings.RESET_TOKEN_EXPIRE_MINUTES} minutes.</p>
      <a href="{reset_link}" style="background: #e53935; padding: 10px 20px; color: white; text-decoration: none; border-radius: 4px;">
        Reset Password
      </a>
    </div>
    """


class EmailService:
    """SMTP 邮件服务"""

    def __init__(self):
        self.smtp_host = settings.SMTP_HOST
        self.smtp_port = settings.SMTP_PORT
        self.smtp_user = settings.SMTP_USER
        self.smtp_password = settings.SMTP_PASSWORD
        self.from_email = settings.SMTP_FROM_EMAIL

    def _build_message(self, to: str, subject: str, html: str) -> EmailMessage:
        message = EmailMessage()
        message["Subject"] = subject
        message["From"] = f"Feedback Portal Support <{self.from_email}>"
        message["To"] = to
        message.set_content("Please view this email in an HTML-capable client.")
        message.add_alternative(html, subtype="html")
        return message

    def send(self, to: str, subject: str, html: str) -> None:
        """同步发送（在线程中调用）"""
        if not self.smtp_host:
            raise EmailDeliveryError("SMTP is not configured")

        message = self._build_message(to, subject, html)
        try:
            with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=30) as server:
                server.starttls()
                if self.smtp_user and self.smtp_password:
                    server.login(self.smtp_user, self.smtp_password)
                server.send_message(message)
        except (smtplib.SMTPException, OSError) as e:
            raise EmailDeliveryError(str(e)) from e

        log.info(f"邮件已发送：{subject} -> {to}")

    async def send_async(self, to: str, subject: str, html: str) -> None:
        """在线程池中发送，避免阻塞事件循环"""
        await asyncio.to_thread(self.send, to, subject, html)


# 全局单例
_email_service = None


def get_email_service() -> EmailService:
    """
    获取邮件服务单例

    Returns:
        EmailService实例
    """
    global _email_service
    if _email_service is None:
        _email_service = EmailService()
    return _email_service
