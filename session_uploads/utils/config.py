from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # AWS / S3
    aws_access_key_id: str = ""
    aws_secret_access_key: str = ""
    aws_region: str = ""
    aws_s3_bucket_name: str = ""
    s3_endpoint_url: str = ""
    s3_connect_timeout: float = 10.0
    s3_read_timeout: float = 60.0
    # Student directory
    postgres_dsn: str = ""
    # Upload pipeline
    signed_url_ttl_seconds: int = 3600
    upload_url_ttl_seconds: int = 300
    multipart_part_size: int = 10 * 1024 * 1024
    multipart_max_concurrency: int = 5
    memory_upload_max_bytes: int = 25 * 1024 * 1024
    temp_upload_dir: str = "/tmp/session-uploads"
    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    app_env: str = "development"

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")
