import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from pathlib import Path
from typing import Any, Dict, Optional

import resend
from jinja2 import Environment, FileSystemLoader, select_autoescape
from supabase import Client
from tenacity import retry, stop_after_attempt, wait_exponential

from journal.core.config import ResendConfig, SMTPConfig, app_config
from journal.core.template_helpers import TemplateHelpers
from journal.models.email_log import EmailStatus
from journal.repositories.base import TableGateway

logger = logging.getLogger("journal.mail")


class EmailService:
    """
    模板邮件发送

    中文注释:
    - provider 优先级：SMTP（配置了 SMTP_HOST）> Resend（配置了 RESEND_API_KEY）> 不发送。
    - helpers 注册表在构造时传入一次，并在每次 render 时作为上下文注入模板。
    - 发送失败只记日志与 email_logs，不向调用方抛异常。
    """

    _SENTINEL = object()

    def __init__(
        self,
        *,
        smtp_config: SMTPConfig | None | object = _SENTINEL,
        resend_config: ResendConfig | None | object = _SENTINEL,
        supabase_client: Client | None = None,
        helpers: Optional[TemplateHelpers] = None,
        templates_dir: Optional[Path] = None,
    ):
        # 中文注释: 显式传 None 视为禁用该 provider，便于单测与不同环境切换。
        if smtp_config is self._SENTINEL:
            smtp_config = SMTPConfig.from_env()
        if resend_config is self._SENTINEL:
            resend_config = ResendConfig.from_env()

        self.smtp_config: SMTPConfig | None = smtp_config  # type: ignore[assignment]
        self.resend_config: ResendConfig | None = resend_config  # type: ignore[assignment]

        if self.resend_config:
            resend.api_key = self.resend_config.api_key

        # Path to templates: backend/journal/core/templates
        templates_dir = templates_dir or Path(__file__).resolve().parent / "templates"
        self._jinja = Environment(
            loader=FileSystemLoader(str(templates_dir)),
            autoescape=select_autoescape(["html", "xml"]),
        )
        self.helpers = helpers or TemplateHelpers()
        self._logs = TableGateway("email_logs", supabase_client, timestamps=False)

    def is_configured(self) -> bool:
        return bool(self.smtp_config or self.resend_config)

    def render_template(
        self,
        template_name: str,
        context: Dict[str, Any],
        helpers: Optional[TemplateHelpers] = None,
    ) -> str:
        registry = helpers or self.helpers
        payload: Dict[str, Any] = {
            "journal_name": app_config.journal_name,
            "frontend_url": app_config.frontend_url,
        }
        payload.update(registry.as_context())
        payload.update(context)
        return self._jinja.get_template(template_name).render(**payload)

    def send_email(
        self,
        *,
        to_email: str,
        subject: str,
        html_body: str,
        text_body: str | None = None,
    ) -> Optional[str]:
        """
        发送邮件（同步），成功返回 provider id（SMTP 返回 "smtp"），失败返回 None。
        """
        if self.smtp_config:
            try:
                msg = MIMEMultipart("alternative")
                msg["Subject"] = subject
                msg["From"] = self.smtp_config.from_email
                msg["To"] = to_email

                if text_body:
                    msg.attach(MIMEText(text_body, "plain", "utf-8"))
                msg.attach(MIMEText(html_body, "html", "utf-8"))

                with smtplib.SMTP(self.smtp_config.host, self.smtp_config.port) as server:
                    if self.smtp_config.use_starttls:
                        server.starttls()
                    if self.smtp_config.user and self.smtp_config.password:
                        server.login(self.smtp_config.user, self.smtp_config.password)
                    server.sendmail(self.smtp_config.from_email, [to_email], msg.as_string())
                return "smtp"
            except Exception as e:
                logger.warning("[SMTP] send failed to=%s: %s", to_email, e)
                return None

        if self.resend_config:
            try:
                result = self._send_with_retry(to_email, subject, html_body)
            except Exception as e:
                logger.warning("[Resend] send failed to=%s: %s", to_email, e)
                return None
            if isinstance(result, dict):
                return str(result.get("id") or "resend")
            return "resend"

        return None

    @retry(stop=stop_after_attempt(3), wait=wait_exponential(multiplier=1, min=2, max=10), reraise=True)
    def _send_with_retry(self, to_email: str, subject: str, html_content: str):
        params = {
            "from": self.resend_config.sender if self.resend_config else "Journal <noreply@africajournal.org>",
            "to": [to_email],
            "subject": subject,
            "html": html_content,
        }
        return resend.Emails.send(params)

    def send_template_email(
        self,
        *,
        to_email: str,
        subject: str,
        template_name: str,
        context: Dict[str, Any],
    ) -> bool:
        if not to_email:
            return False
        if not self.is_configured():
            logger.info("[Email] no provider configured, skip %s to=%s", template_name, to_email)
            self._log_attempt(to_email, subject, template_name, EmailStatus.SKIPPED)
            return False
        try:
            html = self.render_template(template_name, context)
        except Exception as e:
            logger.warning("[Email] template render failed (%s): %s", template_name, e)
            self._log_attempt(to_email, subject, template_name, EmailStatus.FAILED, error_message=str(e))
            return False

        provider_id = self.send_email(to_email=to_email, subject=subject, html_body=html)
        if provider_id is None:
            self._log_attempt(to_email, subject, template_name, EmailStatus.FAILED, error_message="send failed")
            return False
        self._log_attempt(to_email, subject, template_name, EmailStatus.SENT, provider_id=provider_id)
        return True

    def send_email_background(self, to_email: str, subject: str, template_name: str, context: Dict[str, Any]):
        """
        Entry point for BackgroundTasks. Runs synchronously in a threadpool.
        """
        self.send_template_email(
            to_email=to_email,
            subject=subject,
            template_name=template_name,
            context=context,
        )

    def _log_attempt(
        self,
        recipient: str,
        subject: str,
        template_name: str,
        status: EmailStatus,
        provider_id: Optional[str] = None,
        error_message: Optional[str] = None,
    ) -> None:
        data = {
            "recipient": recipient,
            "subject": subject,
            "template_name": template_name,
            "status": status.value,
            "provider_id": provider_id,
            "error_message": error_message,
            "retry_count": 3 if status == EmailStatus.FAILED and self.resend_config and not self.smtp_config else 0,
        }
        try:
            self._logs.insert(data)
        except Exception as e:
            # 中文注释: 日志表缺失/未配置 Supabase 时不影响主流程
            logger.warning("[Email] failed to log email attempt: %s", e)


# Global instance
email_service = EmailService()
