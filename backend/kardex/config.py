from pathlib import Path
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator

BASE_DIR = Path(__file__).resolve().parent.parent  # backend/

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # ===== ENTORNO =====
    environment: str = Field(default="development")
    debug: bool = Field(default=False)

    # ===== DATABASE =====
    database_url: str = Field(default="sqlite:///./data/kardex.db")

    # ===== STOCK / KARDEX =====
    # 0 = sin expiración (solo invalidación explícita)
    stock_cache_ttl_seconds: int = Field(default=300, ge=0)
    metodo_valoracion_defecto: str = Field(default="PROMEDIO")
    kardex_fecha_inicio_defecto: str = Field(default="1900-01-01")

    # ===== LOGS =====
    log_dir: str = Field(default="logs")

    # ===== CORS =====
    allowed_origins: str = Field(default="http://localhost:5173,http://localhost:3000")

    @field_validator("metodo_valoracion_defecto", mode="after")
    @classmethod
    def metodo_en_mayusculas(cls, v: str) -> str:
        v = (v or "").strip().upper()
        if v not in ("PROMEDIO", "FIFO"):
            raise ValueError("METODO_VALORACION_DEFECTO debe ser PROMEDIO o FIFO")
        return v

    @property
    def allowed_origins_list(self) -> list[str]:
        return [o.strip() for o in self.allowed_origins.split(",") if o.strip()]

    @property
    def log_path(self) -> Path:
        return Path(self.log_dir)


settings = Settings()
