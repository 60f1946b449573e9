from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    redis_url: str = "redis://localhost:6379/0"
    tick_period_seconds: int = 60
    grid_cell_size_degrees: float = 0.01
    smoothing_alpha: float = 0.5
    coverage_low_threshold: float = 1.0
    coverage_high_threshold: float = 3.0
    stuck_duration_seconds: int = 5 * 60
    stopped_speed_threshold: float = 1.0
    target_headway_minutes: float = 10.0
    headway_risk_factor: float = 1.5
    diversion_search_radius_m: float = 2000.0
    diversion_max_delay_minutes: float = 10.0
    # 0 disables eviction of vehicles that stop reporting
    vehicle_stale_seconds: int = 15 * 60

    model_config = {"env_prefix": "", "case_sensitive": False}


settings = Settings()
