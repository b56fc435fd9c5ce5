from __future__ import annotations

import argparse
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml  # type: ignore[import-untyped]

DEFAULT_MAX_FILE_SIZE_BYTES = 10 * 1024 * 1024


@dataclass
class OutputsConfig:
    dir: Path


@dataclass
class NormalizationConfig:
    default_phone_country: str = "US"


@dataclass
class CsvConfig:
    include_unmapped_in_notes: bool = True


@dataclass
class LimitsConfig:
    max_file_size_bytes: int = DEFAULT_MAX_FILE_SIZE_BYTES


@dataclass
class LoggingConfig:
    level: str = "WARNING"


@dataclass
class ImportConfig:
    inputs: Dict[str, Optional[str]]
    outputs: OutputsConfig
    normalization: NormalizationConfig
    csv: CsvConfig
    limits: LimitsConfig
    logging: LoggingConfig


def _load_yaml(path: Optional[str]) -> Dict[str, Any]:
    if not path:
        return {}
    with open(path, "r", encoding="utf-8") as handle:
        return yaml.safe_load(handle) or {}


def load_import_config(args: argparse.Namespace) -> ImportConfig:
    config_data = _load_yaml(getattr(args, "config", None))
    inputs = config_data.get("inputs", {})
    outputs_cfg = config_data.get("outputs", {})
    normalization_cfg = config_data.get("normalization", {})
    csv_cfg = config_data.get("csv", {})
    limits_cfg = config_data.get("limits", {})
    logging_cfg = config_data.get("logging", {})

    outputs_dir = Path(getattr(args, "out_dir", None) or outputs_cfg.get("dir") or os.getcwd())
    outputs = OutputsConfig(dir=outputs_dir)

    normalization = NormalizationConfig(
        default_phone_country=getattr(args, "default_phone_country", None)
        or normalization_cfg.get("default_phone_country", "US"),
    )

    csv_config = CsvConfig(
        include_unmapped_in_notes=(
            bool(csv_cfg.get("include_unmapped_in_notes", True))
            if getattr(args, "include_unmapped", None) is None
            else bool(getattr(args, "include_unmapped"))
        ),
    )

    limits = LimitsConfig(
        max_file_size_bytes=int(
            getattr(args, "max_file_size", None)
            or limits_cfg.get("max_file_size_bytes", DEFAULT_MAX_FILE_SIZE_BYTES)
        ),
    )

    arg_level = getattr(args, "log_level", None)
    effective_level = (arg_level or logging_cfg.get("level") or "WARNING").upper()
    logging_config = LoggingConfig(level=effective_level)

    resolved_inputs = {
        "vcf": getattr(args, "vcf", None) or inputs.get("vcf"),
        "csv": getattr(args, "csv", None) or inputs.get("csv"),
        "existing_csv": getattr(args, "existing_csv", None) or inputs.get("existing_csv"),
    }

    return ImportConfig(
        inputs=resolved_inputs,
        outputs=outputs,
        normalization=normalization,
        csv=csv_config,
        limits=limits,
        logging=logging_config,
    )
