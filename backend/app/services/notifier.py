"""실패 알림 메일 전송

재시도 한도에 도달한 레코드 목록을 운영자에게 메일로 보낸다.
표준 smtplib(STARTTLS)을 워커 스레드에서 호출한다.

환경변수:
  SMTP_SERVER, SMTP_PORT: 메일 서버
  EMAIL_ADDRESS, EMAIL_PASSWORD: 발신 계정
  NOTIFICATION_EMAIL_TO: 수신 주소 (비어 있으면 발신 주소로 보냄)
"""

from __future__ import annotations

import asyncio
import html
import logging
import smtplib
from datetime import datetime
from email.message import EmailMessage
from zoneinfo import ZoneInfo

from app.config import settings
from app.models.unit import UnitRecord

logger = logging.getLogger(__name__)

_KST = ZoneInfo("Asia/Seoul")

_CHECKLIST = (
    "에어테이블에서 해당 레코드의 주소/동/호수 정보 확인",
    "정보가 올바른지 확인",
    "필요시 수동으로 정보 입력",
)


def format_failure_summary(
    records: list[UnitRecord],
    *,
    max_attempts: int | None = None,
    now: datetime | None = None,
) -> tuple[str, str, str]:
    """실패 레코드 목록 → (제목, 텍스트 본문, HTML 본문)"""
    max_attempts = max_attempts or settings.MAX_RETRY_ATTEMPTS
    occurred = (now or datetime.now(_KST)).astimezone(_KST).strftime("%Y-%m-%d %H:%M:%S")
    count = len(records)

    subject = f"[집합건물 서비스] {count}개 레코드 처리 실패"

    lines = [f"- {_describe(r)} (레코드 ID: {r.id})" for r in records]
    text = "\n".join([
        f"다음 집합건물 레코드들이 {max_attempts}회 재시도 후에도 처리에 실패했습니다:",
        "",
        *lines,
        "",
        f"총 실패 레코드: {count}개",
        f"발생 시각: {occurred}",
        "",
        "조치 필요:",
        *(f"{i}. {item}" for i, item in enumerate(_CHECKLIST, start=1)),
    ])

    items = "".join(
        f"<li>{html.escape(_describe(r))} <small>(레코드 ID: {html.escape(r.id)})</small></li>"
        for r in records
    )
    body_html = (
        "<h2>집합건물 정보 수집 실패 알림</h2>"
        f"<p>다음 집합건물 레코드들이 <strong>{max_attempts}회 재시도</strong> 후에도 처리에 실패했습니다:</p>"
        f"<ul>{items}</ul>"
        f"<p><strong>총 실패 레코드:</strong> {count}개</p>"
        f"<p><strong>발생 시각:</strong> {occurred}</p>"
    )
    return subject, text, body_html


def _describe(record: UnitRecord) -> str:
    return " ".join(part for part in (record.address, record.dong, record.ho) if part)


def _send_email(subject: str, text: str, body_html: str) -> None:
    """SMTP 발송 (동기, 예외 전파)"""
    sender = settings.EMAIL_ADDRESS
    message = EmailMessage()
    message["Subject"] = subject
    message["From"] = sender
    message["To"] = settings.NOTIFICATION_EMAIL_TO or sender
    message.set_content(text)
    message.add_alternative(body_html, subtype="html")

    with smtplib.SMTP(settings.SMTP_SERVER, settings.SMTP_PORT, timeout=settings.REQUEST_TIMEOUT) as smtp:
        smtp.starttls()
        if settings.EMAIL_PASSWORD:
            smtp.login(sender, settings.EMAIL_PASSWORD)
        smtp.send_message(message)


async def send_failure_notification(records: list[UnitRecord]) -> bool:
    """실패 알림 메일 전송

    Returns:
        True면 전송 성공, False면 실패 (빈 목록, 설정 누락 포함)
    """
    if not records:
        return False

    if not settings.SMTP_SERVER or not settings.EMAIL_ADDRESS:
        logger.warning("실패 알림 메일 스킵 (SMTP 미설정): %d개 레코드", len(records))
        return False

    subject, text, body_html = format_failure_summary(records)
    try:
        await asyncio.to_thread(_send_email, subject, text, body_html)
    except Exception as e:
        logger.error("실패 알림 메일 발송 오류: %s", e)
        return False

    logger.info("실패 알림 메일 발송 완료: %d개 레코드", len(records))
    return True
