"""애플리케이션 설정

모든 환경변수는 .env 파일에서 관리한다. 절대 하드코딩 금지.
"""

from pathlib import Path

from pydantic_settings import BaseSettings

# 프로젝트 루트: backend/ 의 상위 디렉토리
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent


class Settings(BaseSettings):
    """환경변수 로드 설정"""

    # 공공데이터포털 (data.go.kr): 건축물대장 (총괄표제부·표제부·전유공용면적·전유부·주택가격)
    PUBLIC_DATA_API_KEY: str = ""

    # Vworld (국토정보플랫폼): 토지특성, 대지지분
    VWORLD_API_KEY: str = ""
    VWORLD_DOMAIN: str = "localhost"
    LAND_CHARACTERISTICS_YEAR: str = "2024"  # 토지특성 기준연도 (stdrYear)

    # 시군구/법정동 코드 조회 (Google Apps Script 웹앱)
    CODE_LOOKUP_URL: str = ""
    CODE_LOOKUP_MAX_RETRIES: int = 2
    CODE_LOOKUP_RETRY_DELAY: float = 3.0  # 재시도 간격 (초)

    # 에어테이블 (집합건물 테이블/뷰)
    AIRTABLE_ACCESS_TOKEN: str = ""
    AIRTABLE_BASE_ID: str = ""
    AIRTABLE_TABLE: str = ""
    AIRTABLE_VIEW: str = ""

    # 실패 알림 메일 (SMTP)
    SMTP_SERVER: str = ""
    SMTP_PORT: int = 587
    EMAIL_ADDRESS: str = ""
    EMAIL_PASSWORD: str = ""
    NOTIFICATION_EMAIL_TO: str = ""  # 비어 있으면 EMAIL_ADDRESS로 발송

    # 외부 API 호출 제어
    API_DELAY: float = 0.25  # 호출 간격 (초당 4회, 안전마진)
    RECORD_DELAY: float = 0.25  # 레코드 간 대기 (초)
    REQUEST_TIMEOUT: float = 30.0  # 요청 타임아웃 (초)

    # 재시도 이력
    MAX_RETRY_ATTEMPTS: int = 5
    RETRY_RESET_DAYS: int = 7

    # 스케줄러
    JOB_CRON: str = "0 * * * *"  # 매시 정각
    SCHEDULER_ENABLED: bool = True

    # 로깅
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"

    model_config = {
        "env_file": str(_PROJECT_ROOT / ".env"),
        "env_file_encoding": "utf-8",
    }


# 싱글턴 인스턴스
settings = Settings()
