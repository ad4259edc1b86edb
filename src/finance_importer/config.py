"""Configuration loading and validation for the finance importer."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml

from finance_importer.models.category import CategorizationRule
from finance_importer.models.holding import Holding
from finance_importer.parsers.csv_reader import MAX_CSV_FILE_SIZE, MAX_CSV_ROWS, read_csv_rows
from finance_importer.utils.logging_config import DEFAULT_LOG_FILE, get_logger

logger = get_logger(__name__)


class ConfigError(Exception):
    """Exception raised for configuration errors."""

    pass


@dataclass
class ImportConfig:
    """Configuration for file imports.

    Attributes:
        max_file_size_mb: Largest CSV accepted, in megabytes.
        max_rows: Largest number of data rows accepted.
        report_kind: Default broker report kind (holdings or tradebook).
        holding_source: Source tag stored with imported holdings.
    """

    max_file_size_mb: float = MAX_CSV_FILE_SIZE / 1024 / 1024
    max_rows: int = MAX_CSV_ROWS
    report_kind: str = "holdings"
    holding_source: str = "zerodha_import"

    @property
    def max_file_size(self) -> int:
        """Largest CSV accepted, in bytes."""
        return int(self.max_file_size_mb * 1024 * 1024)

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> "ImportConfig":
        """Create from dictionary."""
        defaults = cls()
        return cls(
            max_file_size_mb=float(data.get("max_file_size_mb", defaults.max_file_size_mb)),  # type: ignore[arg-type]
            max_rows=int(data.get("max_rows", defaults.max_rows)),  # type: ignore[arg-type]
            report_kind=str(data.get("report_kind", defaults.report_kind)),
            holding_source=str(data.get("holding_source", defaults.holding_source)),
        )


@dataclass
class OutputConfig:
    """Configuration for output generation.

    Attributes:
        format: Output format (xlsx or csv).
        date_format: Date format for output.
        currency_symbol: Currency symbol for display.
        decimal_places: Number of decimal places.
    """

    format: str = "xlsx"
    date_format: str = "%Y-%m-%d"
    currency_symbol: str = "₹"
    decimal_places: int = 2

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> "OutputConfig":
        """Create from dictionary."""
        return cls(
            format=str(data.get("format", "xlsx")),
            date_format=str(data.get("date_format", "%Y-%m-%d")),
            currency_symbol=str(data.get("currency_symbol", "₹")),
            decimal_places=int(data.get("decimal_places", 2)),  # type: ignore[arg-type]
        )


@dataclass
class LoggingConfig:
    """Configuration for logging.

    Attributes:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        file: Path to log file ("" disables file logging).
    """

    level: str = "INFO"
    file: str = DEFAULT_LOG_FILE

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> "LoggingConfig":
        """Create from dictionary."""
        log_file = data.get("file", DEFAULT_LOG_FILE)
        return cls(
            level=str(data.get("level", "INFO")).upper(),
            file="" if log_file is None else str(log_file),
        )


@dataclass
class Config:
    """Main configuration container.

    Attributes:
        rules: Ordered categorization rules (first match wins).
        sms_category_keywords: Replacement for the built-in SMS
            category -> keywords table, or None to use the built-in one.
        imports: File import limits and defaults.
        output: Output generation configuration.
        logging: Logging configuration.
    """

    rules: list[CategorizationRule] = field(default_factory=list)
    sms_category_keywords: Optional[dict[str, list[str]]] = None
    imports: ImportConfig = field(default_factory=ImportConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def load_yaml_file(path: Path) -> dict[str, object]:
    """Load a YAML file.

    Args:
        path: Path to the YAML file.

    Returns:
        Parsed YAML content.

    Raises:
        FileNotFoundError: If file doesn't exist.
        yaml.YAMLError: If file is invalid YAML.
        ConfigError: If the top level is not a mapping.
    """
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path, encoding="utf-8") as f:
        content = yaml.safe_load(f)

    if not content:
        return {}
    if not isinstance(content, dict):
        raise ConfigError(f"{path.name} must contain a mapping, got {type(content).__name__}")
    return content


def load_settings(path: Path) -> tuple[ImportConfig, OutputConfig, LoggingConfig]:
    """Load settings from settings.yaml.

    Args:
        path: Path to settings.yaml.

    Returns:
        Tuple of (ImportConfig, OutputConfig, LoggingConfig).
    """
    data = load_yaml_file(path)

    imports = ImportConfig()
    if data.get("import"):
        imports = ImportConfig.from_dict(_section(data, "import"))

    output = OutputConfig()
    if data.get("output"):
        output = OutputConfig.from_dict(_section(data, "output"))

    logging_config = LoggingConfig()
    if data.get("logging"):
        logging_config = LoggingConfig.from_dict(_section(data, "logging"))

    return imports, output, logging_config


def load_rules(path: Path) -> tuple[list[CategorizationRule], Optional[dict[str, list[str]]]]:
    """Load categorization rules and SMS keyword overrides from rules.yaml.

    Rule order in the file is the evaluation order.

    Args:
        path: Path to rules.yaml.

    Returns:
        Tuple of (rules list, SMS category keywords or None).

    Raises:
        ConfigError: If a section has the wrong shape or a rule is invalid.
    """
    data = load_yaml_file(path)

    rules: list[CategorizationRule] = []
    if data.get("rules") is not None:
        rule_list = data["rules"]
        if not isinstance(rule_list, list):
            raise ConfigError(f"'rules' must be a list, got {type(rule_list).__name__}")
        for index, rule_data in enumerate(rule_list):
            if not isinstance(rule_data, dict):
                raise ConfigError(f"Rule #{index + 1} must be a mapping")
            try:
                rules.append(CategorizationRule.from_dict(rule_data))
            except KeyError as e:
                raise ConfigError(f"Rule #{index + 1} is missing required key {e}") from e
            except ValueError as e:
                raise ConfigError(f"Rule #{index + 1} is invalid: {e}") from e

    keywords: Optional[dict[str, list[str]]] = None
    if data.get("sms_category_keywords") is not None:
        raw_keywords = data["sms_category_keywords"]
        if not isinstance(raw_keywords, dict):
            raise ConfigError(
                f"'sms_category_keywords' must be a mapping, got {type(raw_keywords).__name__}"
            )
        keywords = {}
        for category, words in raw_keywords.items():
            if not isinstance(words, list):
                raise ConfigError(f"Keywords for '{category}' must be a list")
            keywords[str(category)] = [str(w).lower() for w in words]

    return rules, keywords


def load_holdings(path: Path) -> list[Holding]:
    """Load the user's existing holdings for duplicate detection.

    Accepts either a YAML file with a ``holdings`` list or a CSV with
    ``symbol``, ``quantity`` and ``avg_price`` (or ``avgPrice``) columns.

    Args:
        path: Path to holdings.yaml or holdings.csv.

    Returns:
        List of Holding objects.

    Raises:
        ConfigError: If the file structure is invalid.
    """
    if path.suffix.lower() in (".yaml", ".yml"):
        data = load_yaml_file(path)
        entries = data.get("holdings") or []
        if not isinstance(entries, list):
            raise ConfigError(f"'holdings' must be a list, got {type(entries).__name__}")
    else:
        entries = read_csv_rows(path).rows

    holdings = []
    for index, entry in enumerate(entries):
        if not isinstance(entry, dict) or not entry.get("symbol"):
            raise ConfigError(f"Holding #{index + 1} in {path.name} has no symbol")
        holdings.append(Holding.from_dict(entry))

    logger.info(f"Loaded {len(holdings)} existing holdings from {path}")
    return holdings


def load_config(
    settings_path: Optional[Path] = None,
    rules_path: Optional[Path] = None,
    config_dir: Optional[Path] = None,
) -> Config:
    """Load complete configuration from all config files.

    Args:
        settings_path: Path to settings.yaml (or None to use default).
        rules_path: Path to rules.yaml (or None to use default).
        config_dir: Base config directory (default: ./config).

    Returns:
        Complete Config object. Missing files fall back to defaults.
    """
    if config_dir is None:
        config_dir = Path("config")

    if settings_path is None:
        settings_path = config_dir / "settings.yaml"
    if rules_path is None:
        rules_path = config_dir / "rules.yaml"

    config = Config()

    if settings_path.exists():
        config.imports, config.output, config.logging = load_settings(settings_path)
        logger.info(f"Loaded settings from {settings_path}")
    else:
        logger.warning(f"Settings file not found: {settings_path}, using defaults")

    if rules_path.exists():
        config.rules, config.sms_category_keywords = load_rules(rules_path)
        logger.info(f"Loaded {len(config.rules)} rules from {rules_path}")
    else:
        logger.warning(f"Rules file not found: {rules_path}, no rules will be applied")

    return config


def _section(data: dict[str, object], name: str) -> dict[str, object]:
    section = data[name]
    if not isinstance(section, dict):
        raise ConfigError(f"'{name}' must be a mapping, got {type(section).__name__}")
    return section
