#!/usr/bin/env python3
"""
System Health Check Script for Plant Doctor.

This script verifies that the model, the inference runtime, the
knowledge store and the camera are available.

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
    GREEN = "\033[92m"  # ✓
    RED = "\033[91m"    # ✗
    YELLOW = "\033[93m" # ⚠
    BLUE = "\033[94m"   # ℹ
    BOLD = "\033[1m"
    RESET = "\033[0m"


def print_success(message: str) -> None:
    """Print a success message with green checkmark."""
    print(f"{Colors.GREEN}✓{Colors.RESET} {message}")


def print_error(message: str) -> None:
    """Print an error message with red cross."""
    print(f"{Colors.RED}✗{Colors.RESET} {message}")


def print_warning(message: str) -> None:
    """Print a warning message with yellow warning sign."""
    print(f"{Colors.YELLOW}⚠{Colors.RESET} {message}")


def check_python_version() -> bool:
    """
    Check if Python version is 3.10 or newer.

    Returns:
        bool: True if check passes
    """
    version = sys.version_info
    is_valid = (version.major, version.minor) >= (3, 10)

    if is_valid:
        print_success(f"Python version: {version.major}.{version.minor}.{version.micro}")
    else:
        msg = f"Python version: {version.major}.{version.minor}.{version.micro} (expected 3.10+)"
        print_error(msg)

    return is_valid


def check_config_file() -> bool:
    """
    Check that .env.example is present; a missing .env only warns.

    Returns:
        bool: True if config is properly set up
    """
    if os.path.exists(".env"):
        print_success(".env file exists")
    else:
        print_warning(".env file not found (copy from .env.example)")

    if os.path.exists(".env.example"):
        print_success(".env.example exists")
        return True
    print_error(".env.example missing")
    return False


def check_model_file() -> bool:
    """
    Check that the bundled TFLite model exists.

    Returns:
        bool: True if the model file is present
    """
    from plantdoc.core.config import get_settings

    model_path = get_settings().model_path
    if os.path.isfile(model_path):
        size_kb = os.path.getsize(model_path) / 1024
        print_success(f"Model file found: {model_path} ({size_kb:.0f} KB)")
        return True

    print_error(f"Model file missing: {model_path} (set MODEL_PATH in .env)")
    return False


def check_inference_runtime() -> bool:
    """
    Check that the TFLite interpreter can be imported.

    Returns:
        bool: True if tflite_runtime is installed
    """
    try:
        from tflite_runtime.interpreter import Interpreter  # noqa: F401
    except ImportError:
        print_error("tflite-runtime not installed (pip install -e '.[tflite]')")
        return False

    print_success("TFLite runtime available")
    return True


def check_knowledge_store() -> bool:
    """
    Check the knowledge store REST endpoint (optional check).

    Returns:
        bool: True if reachable or not configured
    """
    import httpx

    from plantdoc.core.config import get_settings

    settings = get_settings()
    if not settings.knowledge_store_url:
        print_warning("Knowledge store not configured (results will carry model data only)")
        return True  # Don't fail on optional check

    url = f"{settings.knowledge_store_url.rstrip('/')}/rest/v1/{settings.knowledge_store_table}"
    headers = {
        "apikey": settings.knowledge_store_key,
        "Authorization": f"Bearer {settings.knowledge_store_key}",
    }
    try:
        response = httpx.get(url, params={"select": "class_name", "limit": 1}, headers=headers, timeout=5)
    except httpx.HTTPError as e:
        print_error(f"Knowledge store connection failed: {str(e)}")
        return False

    if response.status_code == 200:
        print_success(f"Knowledge store reachable ({settings.knowledge_store_table})")
        return True
    print_error(f"Knowledge store returned status {response.status_code}")
    return False


def check_camera() -> bool:
    """
    Check for an OpenCV camera device (optional check).

    Returns:
        bool: Always True; photo upload works without a camera
    """
    from plantdoc.services.camera import probe_opencv_devices

    devices = probe_opencv_devices()
    if devices:
        ids = ", ".join(device.id for device in devices)
        print_success(f"Camera devices found: {ids}")
    else:
        print_warning("No camera device found (live analysis unavailable)")
    return True  # Don't fail on optional check


def main() -> int:
    """
    Run all health checks.

    Returns:
        int: Exit code (0 = success, 1 = failure)
    """
    print(f"\n{Colors.BOLD}🏥 Plant Doctor Health Check{Colors.RESET}\n")
    print(f"{Colors.BLUE}Checking components...{Colors.RESET}\n")

    results = []

    # Run all checks
    results.append(("Python Version", check_python_version()))
    results.append(("Config Files", check_config_file()))
    results.append(("Model File", check_model_file()))
    results.append(("Inference Runtime", check_inference_runtime()))
    results.append(("Knowledge Store", check_knowledge_store()))
    results.append(("Camera", check_camera()))

    # Summary
    print(f"\n{Colors.BOLD}{'='*50}{Colors.RESET}")
    passed = sum(1 for _, result in results if result)
    total = len(results)

    if all(result for _, result in results):
        msg = (
            f"{Colors.GREEN}{Colors.BOLD}✓ All systems operational! "
            f"({passed}/{total} checks passed){Colors.RESET}\n"
        )
        print(msg)
        return 0
    else:
        failed = total - passed
        msg = (
            f"{Colors.RED}{Colors.BOLD}✗ System has issues "
            f"({passed}/{total} checks passed, {failed} failed){Colors.RESET}\n"
        )
        print(msg)

        # Print failed checks
        print(f"{Colors.BOLD}Failed checks:{Colors.RESET}")
        for name, result in results:
            if not result:
                print(f"  {Colors.RED}✗{Colors.RESET} {name}")

        print()
        return 1


if __name__ == "__main__":
    exit_code = main()
    sys.exit(exit_code)
