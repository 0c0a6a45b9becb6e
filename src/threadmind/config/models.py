"""設定データクラス"""

from dataclasses import dataclass, field


@dataclass
class SlackConfig:
    """Slack接続設定"""

    bot_token: str


@dataclass
class LLMConfig:
    """LLM設定（LiteLLMのcompletionに渡すdict）"""

    model: str
    temperature: float = 0.7
    max_tokens: int = 4000


@dataclass
class PersonaConfig:
    """ペルソナ設定"""

    name: str
    system_prompt: str


@dataclass
class MemoryConfig:
    """要約ストア設定"""

    database_path: str


@dataclass
class ContextConfig:
    """コンテキスト構築設定

    Attributes:
        strategy: デフォルトの取得戦略（fixed / adaptive / unlimited）
        fixed_message_limit: fixed 戦略の取得件数
        adaptive_initial_limit: adaptive 戦略の初回取得件数
        adaptive_max_limit: adaptive 戦略の取得件数上限
        unlimited_safety_limit: unlimited 戦略の安全上限
        page_size: 1回のAPI呼び出しで取得する最大件数
        context_window_size: モデルのコンテキストウィンドウ（トークン）
        soft_limit_percent: adaptive 戦略で縮小を始める使用率（%）
        reserve_tokens_for_response: 応答用に確保するトークン
        reserve_tokens_for_system: システムプロンプト用に確保するトークン
    """

    strategy: str = "adaptive"
    fixed_message_limit: int = 50
    adaptive_initial_limit: int = 30
    adaptive_max_limit: int = 200
    unlimited_safety_limit: int = 1000
    page_size: int = 100
    context_window_size: int = 200000
    soft_limit_percent: int = 70
    reserve_tokens_for_response: int = 4000
    reserve_tokens_for_system: int = 1000


@dataclass
class OrchestratorConfig:
    """ツール実行ループ設定"""

    max_iterations: int = 5
    enable_web_search: bool = False


@dataclass
class ResilienceConfig:
    """リトライ・サーキットブレーカー設定"""

    max_attempts: int = 3
    base_delay_seconds: float = 1.0
    failure_threshold: int = 5
    cooldown_seconds: float = 60.0
    max_concurrent_delegate_queries: int = 3


@dataclass
class DelegateConfig:
    """委譲クエリ設定"""

    system_prompt: str | None = None
    max_query_length: int = 2000
    max_hint_length: int = 500
    fallback_message_limit: int = 50


@dataclass
class LoggingConfig:
    """ログ設定"""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    loggers: dict[str, str] | None = None
    debug_llm_messages: bool = False


@dataclass
class Config:
    """アプリケーション設定"""

    slack: SlackConfig
    llm: dict[str, LLMConfig]
    persona: PersonaConfig
    memory: MemoryConfig
    context: ContextConfig = field(default_factory=ContextConfig)
    orchestrator: OrchestratorConfig = field(default_factory=OrchestratorConfig)
    resilience: ResilienceConfig = field(default_factory=ResilienceConfig)
    delegate: DelegateConfig = field(default_factory=DelegateConfig)
    logging: LoggingConfig | None = None
