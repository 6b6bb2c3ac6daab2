import os
import sys
import requests
from dotenv import load_dotenv
from sqlalchemy import create_engine, inspect

REQUIRED_TABLES = [
    'categories', 'products', 'carts', 'cart_items', 'orders', 'order_items', 'order_status_history',
]

def print_status(check_name: str, status: bool, details: str = ""):
    """
    Renders the status of a health system check to the console.

    Args:
        check_name: Human-readable identifier for the check.
        status: Boolean indicating success or failure.
        details: Optional supplementary information.
    """
    color = "\033[92m[OK]\033[0m" if status else "\033[91m[FAIL]\033[0m"
    print(f"{color} {check_name:<30} {details}")

def run_healthcheck():
    """
    Verifies the storefront backend environment: configuration, database schema
    and the running API.
    """
    print("\n=== Storefront Health Verification ===\n")

    base_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    env_path = os.path.join(base_dir, ".env")

    has_env = os.path.exists(env_path)
    print_status(".env file exists", has_env, env_path if has_env else "using process environment")
    if has_env:
        load_dotenv(env_path)

    database_url = os.environ.get("DATABASE_URL", "sqlite:///storefront.db")
    print_status("DATABASE_URL", True, database_url.split("@")[-1])

    try:
        engine = create_engine(database_url)
        tables = set(inspect(engine).get_table_names())
        missing = [t for t in REQUIRED_TABLES if t not in tables]
        print_status("Database schema initialized", not missing,
                     f"missing: {', '.join(missing)}" if missing else f"Found {len(tables)} tables")
        if missing:
            sys.exit(1)
    except Exception as e:
        print_status("Database connection", False, str(e))
        sys.exit(1)

    port = os.environ.get("PORT", "8000")
    url = f"http://localhost:{port}/api/health"
    try:
        r = requests.get(url, timeout=5)
        print_status("API health endpoint", r.status_code == 200, f"HTTP {r.status_code}")
    except Exception as e:
        print_status("API health endpoint", False, str(e))

    print("\nHealth check completed.")

if __name__ == "__main__":
    run_healthcheck()
