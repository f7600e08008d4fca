"""Configuration for LegacyParity"""

import os
from pathlib import Path
from typing import Dict, Any

# Base paths
BASE_DIR = Path(__file__).parent.parent
WORKSPACE_BASE_DIR = Path(os.getenv("LP_WORKSPACE_DIR", "/tmp/legacyparity"))


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


# ===========================================
# Translation service (Google Gemini generateContent)
# ===========================================

# Formatting directives embedded in every request. The comparator does a
# literal text comparison, so output formatting is part of the contract.
TRANSLATION_DIRECTIVES = [
    "Use ONLY rust_decimal::Decimal for all numbers",
    "NEVER use i64, u64, f32, f64 or integer parsing for monetary data",
    "Parse input with: Decimal::from_str(input.trim()).unwrap()",
    "Read the input value from 'input.txt' and write the result to 'output.txt'",
    "Also print the result line to standard output",
    "Format output with standard Rust format macro: format!(\"{:.2}\", value)",
    "DO NOT use num-format, to_formatted_string, or any formatting libraries",
    "Match exact output format: 'CALCULATED INTEREST: 550.00'",
]

OUTPUT_LINE_EXAMPLE = 'let result = format!("CALCULATED INTEREST: {:.2}", total_interest);'

# Model profiles. "code_field" is the JSON field that carries the candidate
# source; "base64" means the source travels base64-encoded in both directions.
TRANSLATION_MODELS = {
    "gemini-2.5-pro": {
        "provider": "google",
        "model": "gemini-2.5-pro",
        "temperature": 0.7,
        "code_field": "modernized_rust",
        "base64": False,
        "thinking": False,
    },
    "gemini-3-pro-preview": {
        "provider": "google",
        "model": "gemini-3-pro-preview",
        "temperature": 1.0,
        "code_field": "modernized_rust_b64",
        "base64": True,
        "thinking": True,
        "thinking_level": "high",
    },
}

TRANSLATION_CONFIG = {
    "endpoint": os.getenv(
        "LP_TRANSLATION_ENDPOINT",
        "https://generativelanguage.googleapis.com/v1beta",
    ),
    "default_model": os.getenv("LP_TRANSLATION_MODEL", "gemini-2.5-pro"),
    "api_key_env_var": "GEMINI_API_KEY",
    "target_language": "Rust",
    "timeout_seconds": int(os.getenv("LP_TRANSLATION_TIMEOUT", "600")),
    "max_retries": 3,
    "base_delay_seconds": 1.0,
    "max_delay_seconds": 30.0,
    # HTTP statuses worth retrying; any other non-2xx is a hard failure
    "retry_statuses": [408, 429, 500, 502, 503, 504],
}

# ===========================================
# Toolchains
# ===========================================

CARGO_MANIFEST = """[package]
name = "modernized"
version = "0.1.0"
edition = "2021"

[dependencies]
rust_decimal = "1.36"
rust_decimal_macros = "1.36"
"""

TOOLCHAINS = {
    "legacy": {
        "name": "GnuCOBOL",
        "command": os.getenv("LP_COBC", "cobc"),
        "flags": ["-x", "-std=ibm"],
        "free_format_flag": "-free",
        "source_file": "program.cbl",
        "artifact": "cobol_prog",
        "docker_image": os.getenv("LP_COBOL_IMAGE", "legacyparity-cobol:latest"),
        "compile_timeout_seconds": int(os.getenv("LP_COMPILE_TIMEOUT", "120")),
        "run_timeout_seconds": int(os.getenv("LP_RUN_TIMEOUT", "30")),
    },
    "candidate": {
        "name": "Cargo",
        "command": os.getenv("LP_CARGO", "cargo"),
        "flags": ["build", "--release"],
        "manifest": CARGO_MANIFEST,
        "source_file": "src/main.rs",
        "artifact": "target/release/modernized",
        "docker_image": os.getenv("LP_RUST_IMAGE", "legacyparity-rust:latest"),
        "compile_timeout_seconds": int(os.getenv("LP_CARGO_TIMEOUT", "600")),
        "run_timeout_seconds": int(os.getenv("LP_RUN_TIMEOUT", "30")),
    },
}

# Where builds and program runs happen. "local" runs on the host; "docker"
# runs each command in a throwaway container with the working directory
# mounted at /workspace. Builds need the network to fetch crates; the
# programs themselves never get it.
SANDBOX_CONFIG = {
    "runner": os.getenv("LP_RUNNER", "local"),
    "docker_command": os.getenv("LP_DOCKER", "docker"),
    "memory_limit": os.getenv("LP_SANDBOX_MEMORY", "512m"),
    "network": {
        "build": os.getenv("LP_SANDBOX_BUILD_NETWORK", "bridge"),
        "run": "none",
    },
    "kill_timeout_seconds": 10,
}

# ===========================================
# Fixture data
# ===========================================

FIXTURE_CONFIG = {
    "record_key": os.getenv("LP_FIXTURE_KEY", "data/loan_data.json"),
    "amount_field": "loan_amount",
    "scale": 2,  # amounts are stored in cents
}

# Which output channel is authoritative for each variant. Legacy programs
# signal completion by writing output.txt; candidates are told to do both.
FIXTURE_CONTRACT = {
    "input_file": "input.txt",
    "output_file": "output.txt",
    "channels": {
        "legacy": {"authoritative": "file", "fallback": "stdout"},
        "candidate": {"authoritative": "file", "fallback": "stdout"},
    },
}

# Source kinds by file extension. Only kinds with a fixture-execution
# contract get behavioral validation.
SOURCE_KINDS = {
    "cobol": {
        "label": "COBOL",
        "extensions": [".cbl", ".cob"],
        "validates_behavior": True,
    },
    "assembler": {
        "label": "Assembler",
        "extensions": [],  # fallback for everything else
        "validates_behavior": False,
    },
}

# ===========================================
# Storage / archival
# ===========================================

STORAGE_CONFIG = {
    "region": os.getenv("AWS_REGION", "us-east-1"),
    "endpoint_url": os.getenv("LP_S3_ENDPOINT_URL"),
    "force_path_style": _env_flag("LP_S3_PATH_STYLE"),
    "presign_ttl_seconds": 3600,  # 1 hour
}

STORAGE_CATEGORIES = {
    "validated": "modernized/validated",
    "needs_review": "modernized/needs-review",
    "failed": "modernized/failed",
    "unvalidated": "modernized/unvalidated",
}

TRANSCRIPT_CATEGORY = "raw_logs"

ARCHIVE_EXTENSIONS = {
    "candidate": "rs",
    "transcript": "json",
}

# ===========================================
# Workspaces / server
# ===========================================

WORKSPACE_CONFIG = {
    "base_dir": WORKSPACE_BASE_DIR,
    "keep_workspaces": _env_flag("LP_KEEP_WORKSPACES"),
}

SERVER_CONFIG = {
    "host": os.getenv("LP_HOST", "0.0.0.0"),
    "port": int(os.getenv("LP_PORT", "8080")),
    "cors_origins": [o.strip() for o in os.getenv("LP_CORS_ORIGINS", "*").split(",") if o.strip()],
}


def get_translation_model(model_id: str = None) -> Dict[str, Any]:
    """Look up a translation model profile (default model if None)"""
    model_id = model_id or TRANSLATION_CONFIG["default_model"]
    if model_id not in TRANSLATION_MODELS:
        raise ValueError(f"Unknown translation model: {model_id}")
    return TRANSLATION_MODELS[model_id]


def get_config() -> Dict[str, Any]:
    """Get full configuration dictionary"""
    return {
        "base_dir": str(BASE_DIR),
        "translation": TRANSLATION_CONFIG,
        "translation_models": TRANSLATION_MODELS,
        "toolchains": {
            variant: {k: v for k, v in cfg.items() if k != "manifest"}
            for variant, cfg in TOOLCHAINS.items()
        },
        "sandbox": SANDBOX_CONFIG,
        "fixture": FIXTURE_CONFIG,
        "fixture_contract": FIXTURE_CONTRACT,
        "source_kinds": SOURCE_KINDS,
        "storage": STORAGE_CONFIG,
        "storage_categories": STORAGE_CATEGORIES,
        "workspace": {
            "base_dir": str(WORKSPACE_CONFIG["base_dir"]),
            "keep_workspaces": WORKSPACE_CONFIG["keep_workspaces"],
        },
        "server": SERVER_CONFIG,
    }
