"""
Setup verification script for the Infographic Studio backend.
Checks dependencies, Ollama and that the seed document renders.
"""
import asyncio
import os
import sys
from typing import List, Tuple

# Color codes for terminal output
GREEN = "\033[92m"
RED = "\033[91m"
YELLOW = "\033[93m"
BLUE = "\033[94m"
RESET = "\033[0m"


def print_status(message: str, status: bool):
    """Print colored status message."""
    symbol = f"{GREEN}✓{RESET}" if status else f"{RED}✗{RESET}"
    print(f"{symbol} {message}")


async def check_python_version() -> bool:
    """Check Python version is 3.10+."""
    version = sys.version_info
    if version.major == 3 and version.minor >= 10:
        print_status(f"Python version: {version.major}.{version.minor}.{version.micro}", True)
        return True
    print_status(f"Python version {version.major}.{version.minor} (requires 3.10+)", False)
    return False


async def check_dependencies() -> bool:
    """Check if required packages are installed."""
    required_packages = [
        "fastapi",
        "uvicorn",
        "pydantic",
        "pydantic_settings",
        "httpx",
    ]

    all_installed = True
    for package in required_packages:
        try:
            __import__(package)
            print_status(f"Package '{package}' installed", True)
        except ImportError:
            print_status(f"Package '{package}' missing", False)
            all_installed = False

    return all_installed


async def check_env_file() -> bool:
    """A .env file is optional; every setting has a default."""
    if os.path.exists(".env"):
        print_status(".env file exists", True)
    else:
        print_status(".env file not found, using defaults (see .env.example)", True)
    return True


async def check_seed_document() -> bool:
    """Check the seed document validates and renders."""
    from app.config import settings
    from app.data.templates import seed_document
    from app.services.renderer import render, to_html

    document = seed_document(settings.DEFAULT_TEMPLATE_ID)
    tree = render(document)
    page = to_html(tree, chartjs_url=settings.CHARTJS_CDN_URL)
    sections = len(tree.find("section"))
    ok = sections == len(document.sections) and document.title in page
    print_status(f"Seed document {document.title!r} renders ({sections} sections)", ok)
    return ok


async def check_ollama() -> bool:
    """Check if Ollama is running and has the generation model."""
    try:
        import httpx

        from app.config import settings

        async with httpx.AsyncClient(timeout=5.0) as client:
            response = await client.get(f"{settings.OLLAMA_BASE_URL}/api/tags")

        if response.status_code != 200:
            print_status(f"Ollama service error (status {response.status_code})", False)
            return False

        print_status("Ollama service is running", True)
        model_names = [m["name"] for m in response.json().get("models", [])]
        llm_model = settings.OLLAMA_LLM_MODEL
        has_llm = any(llm_model.split(":")[0] in name for name in model_names)
        print_status(f"LLM model ({llm_model}): {'Found' if has_llm else 'Missing'}", has_llm)
        if not has_llm:
            print(f"  {YELLOW}Run: ollama pull {llm_model}{RESET}")
        return has_llm

    except Exception as e:
        print_status(f"Ollama connection failed: {str(e)}", False)
        print(f"  {YELLOW}Make sure Ollama is installed and running{RESET}")
        print(f"  {YELLOW}Install from: https://ollama.ai/{RESET}")
        print(f"  {YELLOW}Editing works without it; generate and optimize do not{RESET}")
        return False


async def main():
    """Run all verification checks."""
    print(f"\n{BLUE}{'='*60}{RESET}")
    print(f"{BLUE}Infographic Studio Backend - Setup Verification{RESET}")
    print(f"{BLUE}{'='*60}{RESET}\n")

    checks: List[Tuple[str, callable]] = [
        ("Python Version", check_python_version),
        ("Dependencies", check_dependencies),
        ("Environment File", check_env_file),
        ("Seed Document", check_seed_document),
        ("Ollama + Model", check_ollama),
    ]

    results = []

    for check_name, check_func in checks:
        print(f"\n{BLUE}Checking {check_name}...{RESET}")
        try:
            result = await check_func()
            results.append(result)
        except Exception as e:
            print_status(f"Error during check: {str(e)}", False)
            results.append(False)

    # Summary
    print(f"\n{BLUE}{'='*60}{RESET}")
    passed = sum(results)
    total = len(results)

    if passed == total:
        print(f"{GREEN}✓ All checks passed! ({passed}/{total}){RESET}")
        print(f"\n{GREEN}You're ready to run the backend:{RESET}")
        print("  uvicorn app.main:app --reload")
    else:
        print(f"{RED}✗ Some checks failed ({passed}/{total} passed){RESET}")
        print(f"\n{YELLOW}Please fix the issues above before running the backend.{RESET}")
        sys.exit(1)

    print(f"{BLUE}{'='*60}{RESET}\n")


if __name__ == "__main__":
    asyncio.run(main())
