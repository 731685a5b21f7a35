#!/usr/bin/env python3
"""
System Health Check Script for Plant Caretaker.

This script verifies that configuration is in place and that the
external services the app talks to are reachable.

Usage:
    python scripts/doctor.py

Exit codes:
    0: All checks passed
    1: One or more checks failed
"""

import os
import sys


# ANSI color codes for terminal output
class Colors:
    GREEN = "\033[92m"
    RED = "\033[91m"
    YELLOW = "\033[93m"
    BLUE = "\033[94m"
    BOLD = "\033[1m"
    RESET = "\033[0m"


def print_success(message: str) -> None:
    print(f"{Colors.GREEN}✓{Colors.RESET} {message}")


def print_error(message: str) -> None:
    print(f"{Colors.RED}✗{Colors.RESET} {message}")


def print_warning(message: str) -> None:
    print(f"{Colors.YELLOW}⚠{Colors.RESET} {message}")


def check_python_version() -> bool:
    """
    Check if Python version is 3.10 or newer.

    Returns:
        bool: True if check passes
    """
    version = sys.version_info
    label = f"{version.major}.{version.minor}.{version.micro}"

    if version >= (3, 10):
        print_success(f"Python version: {label}")
        return True

    print_error(f"Python version: {label} (expected 3.10+)")
    return False


def check_project_structure() -> bool:
    """Check if required project directories exist."""
    required_dirs = [
        "app",
        "app/api",
        "app/api/endpoints",
        "app/core",
        "app/models",
        "app/services",
        "scripts",
    ]

    all_exist = True
    for dir_path in required_dirs:
        if os.path.isdir(dir_path):
            print_success(f"Directory exists: {dir_path}/")
        else:
            print_error(f"Directory missing: {dir_path}/")
            all_exist = False

    return all_exist


def check_config_file() -> bool:
    """Check if .env file exists and .env.example is present."""
    if os.path.exists(".env"):
        print_success(".env file exists")
    else:
        print_warning(".env file not found (copy from .env.example)")

    if os.path.exists(".env.example"):
        print_success(".env.example exists")
        return True

    print_error(".env.example missing")
    return False


def check_plant_id() -> bool:
    """
    Check the Plant.id API key and, when configured, its usage endpoint.

    A missing key is only a warning while example data is allowed.

    Returns:
        bool: True if identification can serve requests
    """
    try:
        import httpx

        from app.core.config import get_settings
        from app.services.plant_id_client import is_usable_api_key

        settings = get_settings()

        if not is_usable_api_key(settings.plant_id_api_key):
            if settings.plant_id_mock_fallback:
                print_warning("Plant.id API key not configured; example data will be served")
                return True
            print_error("Plant.id API key not configured (set PLANT_ID_API_KEY in .env)")
            return False

        response = httpx.get(
            f"{settings.plant_id_base_url.rstrip('/')}/usage_info",
            headers={"Api-Key": settings.plant_id_api_key},
            timeout=5,
        )
        if response.status_code == 200:
            print_success("Plant.id API key accepted")
            return True

        print_error(f"Plant.id returned status {response.status_code}")
        return False

    except ImportError:
        print_warning("httpx not installed")
        return False
    except Exception as e:
        print_error(f"Plant.id check failed: {str(e)}")
        return False


def check_minio() -> bool:
    """
    Check MinIO connectivity when photo storage is enabled.

    Returns:
        bool: True if storage is disabled or reachable
    """
    try:
        from app.core.config import get_settings
        from app.services.storage import StorageConnectionError, get_storage_service

        settings = get_settings()
        if not settings.photo_storage_enabled:
            print_warning("Photo storage disabled; images are kept on plant records")
            return True

        service = get_storage_service()
        print_success(f"MinIO connection OK ({settings.minio_endpoint}, bucket {service.bucket_name})")
        return True

    except ImportError:
        print_warning("MinIO library not installed")
        return False
    except StorageConnectionError as e:
        print_error(f"MinIO connection failed: {str(e)}")
        return False


def main() -> int:
    """
    Run all health checks.

    Returns:
        int: Exit code (0 = success, 1 = failure)
    """
    print(f"\n{Colors.BOLD}Plant Caretaker Health Check{Colors.RESET}\n")

    results = [
        ("Python Version", check_python_version()),
        ("Project Structure", check_project_structure()),
        ("Config Files", check_config_file()),
        ("Plant.id", check_plant_id()),
        ("MinIO", check_minio()),
    ]

    print(f"\n{Colors.BOLD}{'='*50}{Colors.RESET}")
    passed = sum(1 for _, result in results if result)
    total = len(results)

    if passed == total:
        print(f"{Colors.GREEN}{Colors.BOLD}✓ All checks passed ({passed}/{total}){Colors.RESET}\n")
        return 0

    print(
        f"{Colors.RED}{Colors.BOLD}✗ System has issues "
        f"({passed}/{total} checks passed, {total - passed} failed){Colors.RESET}\n"
    )
    print(f"{Colors.BOLD}Failed checks:{Colors.RESET}")
    for name, result in results:
        if not result:
            print(f"  {Colors.RED}✗{Colors.RESET} {name}")
    print()
    return 1


if __name__ == "__main__":
    sys.exit(main())
