import os


class Settings:
    # Library Settings
    PROJECT_NAME: str = "metric-tags"
    VERSION: str = "0.3.0"

    # Naming Settings
    METRICS_SEPARATOR: str = os.getenv("METRICS_SEPARATOR", ".")

    # Sampling Settings (seconds)
    METRICS_FLUSH_INTERVAL: float = float(os.getenv("METRICS_FLUSH_INTERVAL", 10))
    # Reading GC stats walks the collector's generations; keep it minutes-scale.
    METRICS_STATS_GC_INTERVAL: float = float(os.getenv("METRICS_STATS_GC_INTERVAL", 60))
    # Memory stats count every tracked object, which is the expensive one.
    METRICS_STATS_MEM_INTERVAL: float = float(os.getenv("METRICS_STATS_MEM_INTERVAL", 300))

    # Registry Settings
    METRICS_HISTOGRAM_RESERVOIR: int = int(os.getenv("METRICS_HISTOGRAM_RESERVOIR", 1028))
    METRICS_ON_DUPLICATE: str = os.getenv("METRICS_ON_DUPLICATE", "replace").lower()  # "replace" or "reject"

    # Logging Settings
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
    LOG_FILE: str = os.getenv("LOG_FILE", "")


settings = Settings()
