"""
统一配置模块
- 配置文件: config/genfuze_config.json（可调参数）
- 本地覆盖: config/genfuze_config.local.json（本地私密配置）
- 环境变量优先覆盖敏感项（API Key、SMTP 密码等）
"""

import os
import json
from pathlib import Path
from dataclasses import dataclass, field
from typing import List, Dict, Any, Optional
from dotenv import load_dotenv

load_dotenv()

# 加载 config/genfuze_config.json + config/genfuze_config.local.json（本地覆盖）
_CONFIG_PATH = Path(__file__).parent / "genfuze_config.json"
_LOCAL_CONFIG_PATH = Path(__file__).parent / "genfuze_config.local.json"


def _load_json(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


_RAW_CONFIG: Dict[str, Any] = _load_json(_CONFIG_PATH)
if _LOCAL_CONFIG_PATH.exists():
    _RAW_CONFIG = _deep_merge(_RAW_CONFIG, _load_json(_LOCAL_CONFIG_PATH))


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _section(name: str) -> Dict[str, Any]:
    return (_RAW_CONFIG.get(name) or {})


@dataclass
class ApiSettings:
    """API 服务配置"""
    host: str = "127.0.0.1"
    port: int = 5000
    cors_origins: List[str] = field(default_factory=lambda: ["*"])


# LLM 环境变量映射
_LLM_ENV_KEYS = {
    "gemini": "GEMINI_API_KEY",
    "openai": "OPENAI_API_KEY",
    "perplexity": "PERPLEXITY_API_KEY",
    "serper": "SERPER_API_KEY",
}

# 各 provider 默认 base_url / model（config 未填时回退）
_LLM_DEFAULTS = {
    "gemini": {"base_url": "https://generativelanguage.googleapis.com/v1beta", "default_model": "gemini-1.5-flash"},
    "openai": {"base_url": "https://api.openai.com/v1", "default_model": "gpt-3.5-turbo"},
    "perplexity": {"base_url": "https://api.perplexity.ai", "default_model": "r1-1776"},
    "serper": {"base_url": "https://google.serper.dev", "default_model": "serper-search"},
}

# 前端习惯用 chatgpt 指代 openai
PROVIDER_ALIASES = {"chatgpt": "openai"}


class LLMSettings:
    """
    LLM 配置：genfuze_config.json 中 llm.providers 支持 gemini / openai / perplexity / serper。
    环境变量覆盖 api_key：GEMINI_API_KEY, OPENAI_API_KEY, PERPLEXITY_API_KEY, SERPER_API_KEY；
    base_url 可用 {PROVIDER}_BASE_URL 覆盖。
    """

    def __init__(self):
        cfg = _section("llm")
        self._providers: Dict[str, Any] = cfg.get("providers") or {}

    def get_provider(self, name: str) -> Dict[str, Any]:
        name = PROVIDER_ALIASES.get(name, name)
        raw = self._providers.get(name) or {}
        defaults = _LLM_DEFAULTS.get(name) or {}
        env_key = _LLM_ENV_KEYS.get(name)
        api_key = (os.getenv(env_key) if env_key else None) or raw.get("api_key") or ""
        base_url = (
            os.getenv(f"{name.upper()}_BASE_URL")
            or raw.get("base_url")
            or defaults.get("base_url")
            or ""
        )
        return {
            "api_key": api_key.strip(),
            "base_url": base_url.rstrip("/"),
            "default_model": raw.get("default_model") or defaults.get("default_model") or "",
        }

    def resolve_model(self, provider: str, model_override: str | None = None) -> str:
        if model_override and model_override.strip():
            return model_override.strip()
        return self.get_provider(provider).get("default_model") or ""

    def is_available(self, name: str) -> bool:
        """检查某 provider 是否已配置 api_key"""
        return bool(self.get_provider(name).get("api_key"))

    def names(self) -> List[str]:
        return list(_LLM_DEFAULTS.keys())


@dataclass
class PathSettings:
    base: Path = field(default_factory=lambda: Path(__file__).parent.parent)

    @property
    def data(self) -> Path:
        return self.base / "data"

    @property
    def logs(self) -> Path:
        return self.base / "logs"

    @property
    def browser_profiles(self) -> Path:
        return self.data / "browser_profiles"

    def ensure_dirs(self):
        for p in [self.data, self.logs, self.browser_profiles]:
            p.mkdir(parents=True, exist_ok=True)


@dataclass
class LLMPerfSettings:
    """LLM：超时、重试"""
    timeout_seconds: int = 30
    max_retries: int = 3
    retry_backoff: float = 1.0


@dataclass
class EmbeddingSettings:
    """Gemini 向量化：模型、缓存"""
    model: str = "embedding-001"
    cache_enabled: bool = True
    cache_ttl_seconds: int = 3600
    cache_max_size: int = 2000


@dataclass
class StorageSettings:
    """会话存储后端：sqlite | json | memory"""
    backend: str = "sqlite"
    json_dir: str = "data/json_store"


@dataclass
class AuthSettings:
    """认证配置：token 有效期、认证方式、默认管理员（敏感项放 .local.json 或 .env）"""
    secret_key: str = "change-me-in-local"
    access_token_expire_hours: float = 1.0
    refresh_token_expire_days: float = 7.0
    auth_type: str = "azure"  # local | azure
    enable_local_auth: bool = False
    admin_email: str = "admin@example.com"
    admin_default_password: str = "admin123"
    azure_tenant_id: str = ""
    azure_client_id: str = ""
    azure_jwks_url: str = "https://login.microsoftonline.com/common/discovery/v2.0/keys"
    graph_me_url: str = "https://graph.microsoft.com/v1.0/me"
    session_sweep_interval_hours: float = 24.0


@dataclass
class AutomationSettings:
    """浏览器自动化：登录轮询、输入查找、响应提取等节奏参数（秒）"""
    headless: bool = False
    user_data_dir: str = "data/browser_profiles"
    profile: str = "Default"
    navigation_settle: float = 5.0
    login_attempts: int = 60
    login_poll_interval: float = 1.0
    input_attempts: int = 60
    input_poll_interval: float = 1.0
    typing_delay_min_ms: int = 10
    typing_delay_max_ms: int = 40
    post_type_pause: float = 0.5
    response_wait_min: float = 8.0
    response_wait_max: float = 15.0
    response_timeout: float = 30.0
    response_poll_interval: float = 3.0
    response_poll_backoff: float = 1.5
    response_poll_max_interval: float = 8.0
    element_settle: float = 2.0
    between_questions: float = 2.0


@dataclass
class ContentSettings:
    """URL 正文抽取"""
    timeout_seconds: int = 15
    max_content_length: int = 50000
    user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    )


@dataclass
class EmailSettings:
    """SMTP 邮件通知"""
    host: str = ""
    port: int = 587
    secure: bool = False
    user: str = ""
    password: str = ""
    sender: str = ""

    @property
    def configured(self) -> bool:
        return bool(self.host and self.user and self.password)


class Settings:
    def __init__(self):
        self.env = os.getenv("GENFUZE_ENV", "dev")
        self.path = PathSettings()
        self.llm = LLMSettings()

        a = _section("api")
        origins = os.getenv("CORS_ORIGINS") or a.get("cors_origins") or ["*"]
        if isinstance(origins, str):
            origins = [x.strip() for x in origins.split(",") if x.strip()]
        self.api = ApiSettings(
            host=str(os.getenv("API_HOST") or a.get("host", "127.0.0.1")),
            port=int(os.getenv("PORT") or a.get("port", 5000)),
            cors_origins=origins,
        )

        lp = (_section("performance").get("llm") or {})
        self.perf_llm = LLMPerfSettings(
            timeout_seconds=int(lp.get("timeout_seconds", 30)),
            max_retries=int(lp.get("max_retries", 3)),
            retry_backoff=float(lp.get("retry_backoff", 1.0)),
        )

        em = _section("embedding")
        self.embedding = EmbeddingSettings(
            model=str(em.get("model", "embedding-001")),
            cache_enabled=bool(em.get("cache_enabled", True)),
            cache_ttl_seconds=int(em.get("cache_ttl_seconds", 3600)),
            cache_max_size=int(em.get("cache_max_size", 2000)),
        )

        st = _section("storage")
        self.storage = StorageSettings(
            backend=(os.getenv("GENFUZE_STORAGE") or st.get("backend") or "sqlite").strip().lower(),
            json_dir=str(st.get("json_dir", "data/json_store")),
        )

        au = _section("auth")
        self.auth = AuthSettings(
            secret_key=str(os.getenv("JWT_SECRET") or au.get("secret_key", "change-me-in-local")),
            access_token_expire_hours=float(au.get("access_token_expire_hours", 1)),
            refresh_token_expire_days=float(au.get("refresh_token_expire_days", 7)),
            auth_type=(os.getenv("AUTH_TYPE") or au.get("auth_type") or "azure").strip().lower(),
            enable_local_auth=_env_bool("ENABLE_LOCAL_AUTH", bool(au.get("enable_local_auth", False))),
            admin_email=str(au.get("admin_email", "admin@example.com")),
            admin_default_password=str(au.get("admin_default_password", "admin123")),
            azure_tenant_id=str(os.getenv("AZURE_TENANT_ID") or au.get("azure_tenant_id", "")),
            azure_client_id=str(os.getenv("AZURE_CLIENT_ID") or au.get("azure_client_id", "")),
            azure_jwks_url=str(au.get("azure_jwks_url", AuthSettings.azure_jwks_url)),
            graph_me_url=str(au.get("graph_me_url", AuthSettings.graph_me_url)),
            session_sweep_interval_hours=float(au.get("session_sweep_interval_hours", 24)),
        )

        at = _section("automation")
        self.automation = AutomationSettings(
            headless=_env_bool("AUTOMATION_HEADLESS", bool(at.get("headless", False))),
            user_data_dir=str(os.getenv("CHROME_USER_DATA_DIR") or at.get("user_data_dir", "data/browser_profiles")),
            profile=str(os.getenv("CHROME_PROFILE") or at.get("profile", "Default")),
            navigation_settle=float(at.get("navigation_settle", 5.0)),
            login_attempts=int(at.get("login_attempts", 60)),
            login_poll_interval=float(at.get("login_poll_interval", 1.0)),
            input_attempts=int(at.get("input_attempts", 60)),
            input_poll_interval=float(at.get("input_poll_interval", 1.0)),
            typing_delay_min_ms=int(at.get("typing_delay_min_ms", 10)),
            typing_delay_max_ms=int(at.get("typing_delay_max_ms", 40)),
            post_type_pause=float(at.get("post_type_pause", 0.5)),
            response_wait_min=float(at.get("response_wait_min", 8.0)),
            response_wait_max=float(at.get("response_wait_max", 15.0)),
            response_timeout=float(at.get("response_timeout", 30.0)),
            response_poll_interval=float(at.get("response_poll_interval", 3.0)),
            response_poll_backoff=float(at.get("response_poll_backoff", 1.5)),
            response_poll_max_interval=float(at.get("response_poll_max_interval", 8.0)),
            element_settle=float(at.get("element_settle", 2.0)),
            between_questions=float(at.get("between_questions", 2.0)),
        )

        ct = _section("content")
        self.content = ContentSettings(
            timeout_seconds=int(ct.get("timeout_seconds", 15)),
            max_content_length=int(ct.get("max_content_length", 50000)),
        )

        e = _section("email")
        self.email = EmailSettings(
            host=str(os.getenv("SMTP_HOST") or e.get("host", "")),
            port=int(os.getenv("SMTP_PORT") or e.get("port", 587)),
            secure=_env_bool("SMTP_SECURE", bool(e.get("secure", False))),
            user=str(os.getenv("SMTP_USER") or e.get("user", "")),
            password=str(os.getenv("SMTP_PASS") or e.get("password", "")),
            sender=str(os.getenv("SMTP_FROM") or e.get("from", "")),
        )

    def print_info(self):
        print(f"""
========================================
  Genfuze.ai Q&A 服务
========================================
  环境: {self.env}
  存储: {self.storage.backend}
  认证: {self.auth.auth_type} (local={self.auth.enable_local_auth})
  LLM: {', '.join(n for n in self.llm.names() if self.llm.is_available(n)) or '-'}
========================================
        """)


# 全局单例
settings = Settings()
