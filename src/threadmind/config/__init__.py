"""設定管理モジュール"""

from threadmind.config.loader import (
    ConfigError,
    ConfigValidationError,
    EnvironmentVariableError,
    expand_env_vars,
    load_config,
)
from threadmind.config.models import (
    Config,
    ContextConfig,
    DelegateConfig,
    LLMConfig,
    LoggingConfig,
    MemoryConfig,
    OrchestratorConfig,
    PersonaConfig,
    ResilienceConfig,
    SlackConfig,
)

__all__ = [
    "Config",
    "ConfigError",
    "ConfigValidationError",
    "ContextConfig",
    "DelegateConfig",
    "EnvironmentVariableError",
    "LLMConfig",
    "LoggingConfig",
    "MemoryConfig",
    "OrchestratorConfig",
    "PersonaConfig",
    "ResilienceConfig",
    "SlackConfig",
    "expand_env_vars",
    "load_config",
]
