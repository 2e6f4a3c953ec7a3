# config.py
import os
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    프로젝트 전역 설정 관리 (Pydantic V2)
    .env 파일에서 환경 변수를 로드하며, 없을 경우 기본값을 사용합니다.
    """

    # Project Info
    PROJECT_NAME: str = "Filter_Calibration"
    VERSION: str = "1.0.0"

    # Storage Settings
    LOG_DIR: str = "./logs"
    GRID_PATH: str = os.path.join(
        os.path.dirname(os.path.abspath(__file__)),
        "src",
        "calibration",
        "resources",
        "grid_60hz.json",
    )

    # Sampling
    SAMPLE_RATE_HZ: float = 60.0
    MIN_WINDOW_SAMPLES: int = 30

    # Speed estimation (1 = 순수 최대값, 원본 구현은 5 / 3.0 사용)
    SPEED_OUTLIER_RANK: int = 1
    SPEED_NOISE_GATE_SIGMA: float = 0.0

    # Synthetic traces
    SYNTHETIC_SEED: int = 0
    JITTER_SAMPLES: int = 600
    EDGE_LEAD_SAMPLES: int = 30
    EDGE_RAMP_SAMPLES: int = 6
    EDGE_HOLD_SAMPLES: int = 240

    # Scoring / search
    LAG_THRESHOLD_FRACTION: float = 0.9
    ONE_EURO_D_CUTOFF_HZ: float = 1.0
    SEARCH_WORKERS: int = 1
    SHOW_PROGRESS: bool = False

    # .env 파일 로드 설정
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


# 싱글톤 인스턴스 생성
settings = Settings()

# 로그 디렉토리 자동 생성 (초기화 시점 실행)
os.makedirs(settings.LOG_DIR, exist_ok=True)
