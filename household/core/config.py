import os
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
	# Accept a direct URL (supports either DATABASE_URL or database_url env vars)
	database_url: str | None = None

	# Individual parts, only used when no explicit URL is configured
	DB_DRIVER: str = "sqlite"
	DB_HOST: str = "localhost"
	DB_USER: str = ""
	DB_PASSWORD: str = ""
	DB_NAME: str = "household"
	DB_PORT: int = 5432

	SECRET_KEY: str = "secret"
	ALGORITHM: str = "HS256"
	ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

	# Observability / Telemetry flags
	ENABLE_REQUEST_LOGGING: bool = True
	ENABLE_OUTBOUND_LOGGING: bool = True
	LOG_SAMPLE_RATE: float = 1.0

	# Outbound e-mail boundary
	APP_BASE_URL: str = os.getenv("APP_BASE_URL", "http://localhost:3000")
	EMAIL_FROM: str = "Household Sync <hello@household.local>"

	# Partnership rules
	INVITE_EXPIRY_DAYS: int = 7
	INVITE_MAX_REMINDERS: int = 3
	CURRENCY_SYNC_WINDOW_HOURS: int = 24
	ONBOARDING_GROUP_STEP: int = 3
	DEFAULT_EMOJI: str = "✅"
	EMOJI_SUGGESTION_SEED: int | None = None

	@property
	def DATABASE_URL(self) -> str:
		# 1) Value from settings (supports .env and OS env via BaseSettings)
		if self.database_url and self.database_url.strip():
			return self.database_url.strip()
		# 2) SQLite file next to the working directory
		if self.DB_DRIVER.startswith("sqlite"):
			return f"{self.DB_DRIVER}:///./{self.DB_NAME}.db"
		# 3) Assemble from parts
		return f"{self.DB_DRIVER}://{self.DB_USER}:{self.DB_PASSWORD}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"

	# Pydantic v2 settings config
	model_config = SettingsConfigDict(
		env_file=".env",
		extra="ignore",
		case_sensitive=False,
	)

settings = Settings()
