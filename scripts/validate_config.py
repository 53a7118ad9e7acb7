#!/usr/bin/env python3
"""Configuration validation script."""

import sys
from pathlib import Path
from typing import List

# Add the project root to the Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from profithub_core.config.loader import ConfigLoader
from profithub_core.config.validation import ConfigValidator, ValidationError


def validate_symbol_config(symbol: str) -> List[ValidationError]:
    """Validate configuration for a specific symbol."""
    loader = ConfigLoader.create()
    config = loader.merge_config(symbol)
    return ConfigValidator.validate_config(config)


def main():
    """Main validation function."""
    print("🔍 Validating Profithub configuration...")

    loader = ConfigLoader.create()

    # Every configured symbol plus one that only has defaults
    symbols = sorted(loader.load_pip_sizes()) + ["UNKNOWN_SYMBOL"]

    all_valid = True

    for symbol in symbols:
        print(f"\n📊 Validating {symbol}...")

        try:
            errors = validate_symbol_config(symbol)

            if errors:
                print(f"❌ Found {len(errors)} validation errors:")
                for error in errors:
                    print(f"  • {error.field}: {error.message} (value: {error.value})")
                all_valid = False
            else:
                print(f"✅ {symbol} configuration is valid")

        except (OSError, ValueError, TypeError) as e:
            print(f"❌ Error validating {symbol}: {e}")
            all_valid = False

    # Test session-level overrides
    print("\n📋 Testing session overrides...")
    test_overrides = {
        "even_odd": {"power_threshold": 60.0},
        "trade": {"base_stake": 2.0, "tp_sl_enabled": True},
    }

    errors = ConfigValidator.validate_config(loader.merge_config("R_100", test_overrides))
    if errors:
        print("❌ Session override validation failed:")
        for error in errors:
            print(f"  • {error.field}: {error.message}")
        all_valid = False
    else:
        print("✅ Session override validation passed")

    if all_valid:
        print("\n🎉 All configuration validation passed!")
        sys.exit(0)
    else:
        print("\n❌ Configuration validation failed!")
        sys.exit(1)


if __name__ == "__main__":
    main()
