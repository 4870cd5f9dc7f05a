#!/usr/bin/env python
"""
Setup verification script for RECS Thermostat Analysis.

This script checks that the environment is properly configured and
that the RECS data file is available or can be downloaded.
"""

import sys
import os


def check_python_version():
    """Check Python version."""
    version = sys.version_info
    if version.major == 3 and version.minor >= 8:
        print(f"✓ Python {version.major}.{version.minor}.{version.micro}")
        return True
    else:
        print(f"✗ Python {version.major}.{version.minor}.{version.micro} - Requires Python 3.8+")
        return False


def check_imports():
    """Check required package imports."""
    required_packages = [
        'pandas',
        'numpy',
        'scipy',
        'matplotlib',
        'seaborn',
        'dotenv'
    ]

    all_ok = True
    for package in required_packages:
        try:
            __import__(package)
            print(f"✓ {package} installed")
        except ImportError:
            print(f"✗ {package} not installed")
            all_ok = False

    return all_ok


def check_data_path():
    """Check data path configuration."""
    try:
        from recs_thermostat.config import DATA_PATH, RECS_FILENAME, RECS_URL, print_config

        print("\n" + "="*50)
        print("DATA PATH CONFIGURATION")
        print("="*50)

        env_path = os.getenv('RECS_DATA_PATH')
        if env_path:
            print(f"✓ Using RECS_DATA_PATH from environment: {env_path}")
        else:
            print("ℹ RECS_DATA_PATH not set, using default location")

        local_file = DATA_PATH / RECS_FILENAME
        print(f"\nConfigured data path: {DATA_PATH}")
        print(f"RECS file: {local_file}")

        if local_file.exists():
            print("✓ Local copy of RECS data found")
        else:
            print("ℹ No local copy yet; it will be downloaded on first run from")
            print(f"  {RECS_URL}")

        print()
        print_config()
        return True

    except Exception as e:
        print(f"✗ Error checking data path: {e}")
        return False


def test_data_loading():
    """Test loading the cached RECS file, if present."""
    try:
        from recs_thermostat.config import DATA_PATH, RECS_FILENAME
        from recs_thermostat.utils import load_recs_data, extract_core

        print("\n" + "="*50)
        print("DATA LOADING TEST")
        print("="*50)

        local_file = DATA_PATH / RECS_FILENAME
        if not local_file.exists():
            print("ℹ Skipped: no local copy to test")
            return True

        recs = load_recs_data(local_file)
        core = extract_core(recs)
        print(f"✓ Successfully loaded {len(recs)} households")
        print(f"  Heating homes: {int((core['heat_home'] == 'Yes').sum())}")
        return True

    except Exception as e:
        print(f"✗ Error testing data loading: {e}")
        return False


def main():
    """Run all checks."""
    print("\n" + "="*50)
    print("RECS THERMOSTAT ANALYSIS - SETUP VERIFICATION")
    print("="*50)

    checks = [
        ("Python Version", check_python_version),
        ("Package Imports", check_imports),
        ("Data Path Configuration", check_data_path),
        ("Data Loading", test_data_loading)
    ]

    results = []
    for name, check_func in checks:
        print(f"\nChecking {name}...")
        print("-" * 30)
        result = check_func()
        results.append((name, result))

    # Summary
    print("\n" + "="*50)
    print("SUMMARY")
    print("="*50)

    all_passed = True
    for name, result in results:
        status = "✓ PASSED" if result else "✗ FAILED"
        print(f"{name}: {status}")
        if not result:
            all_passed = False

    if all_passed:
        print("\n🎉 All checks passed! Your environment is ready.")
        print("\nNext step: python -m scripts.winter_temperatures")
    else:
        print("\n⚠ Some checks failed. Please address the issues above.")
        print("\nCommon fixes:")
        print("1. Set data path: export RECS_DATA_PATH=/path/to/your/data")
        print("2. Install the package: pip install -e .")

    return 0 if all_passed else 1


if __name__ == "__main__":
    sys.exit(main())
