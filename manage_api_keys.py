"""
Admin API Key Management
Generate keys for the /admin endpoints and show which ones are configured
"""
import sys

from uptime_watchdog.config import settings
from uptime_watchdog.middleware import generate_api_key


def mask(key: str) -> str:
    return key if len(key) <= 8 else f"{key[:4]}...{key[-4:]}"


def list_api_keys():
    """List configured admin keys, masked"""
    print("\n" + "=" * 60)
    print("  CONFIGURED ADMIN API KEYS")
    print("=" * 60)

    if not settings.ADMIN_API_KEYS:
        print("\nNo keys configured: /admin endpoints are open.")
    else:
        for key, client_name in settings.ADMIN_API_KEYS.items():
            print(f"\nClient: {client_name}")
            print(f"Key:    {mask(key)}")

    print("\n" + "=" * 60)
    print()


def generate_new_key(client_name: str) -> str:
    api_key = generate_api_key()
    entries = [f"{key}:{name}" for key, name in settings.ADMIN_API_KEYS.items()]
    entries.append(f"{api_key}:{client_name}")

    print("\n" + "=" * 60)
    print("  NEW ADMIN API KEY GENERATED")
    print("=" * 60)
    print(f"\nClient Name: {client_name}")
    print(f"API Key:     {api_key}")
    print("\n⚠️  IMPORTANT: Save this key securely!")
    print("\nTo enable it, set this line in your .env file:")
    print(f'\nADMIN_API_KEYS={",".join(entries)}')
    print("\nThen call the admin endpoints with:")
    print(f'headers = {{"X-API-Key": "{api_key}"}}')
    print("\n" + "=" * 60)
    print()

    return api_key


def main():
    if len(sys.argv) < 2:
        print("\n📋 Admin API Key Management")
        print("\nUsage:")
        print("  python manage_api_keys.py list              - List configured keys")
        print("  python manage_api_keys.py generate <name>   - Generate a new key")
        print()
        return

    command = sys.argv[1].lower()

    if command == "list":
        list_api_keys()
    elif command == "generate":
        if len(sys.argv) < 3:
            print("❌ Error: Please provide a client name")
            print("Usage: python manage_api_keys.py generate <client_name>")
            return
        generate_new_key(" ".join(sys.argv[2:]))
    else:
        print(f"❌ Unknown command: {command}")
        print("Use 'list' or 'generate'")


if __name__ == "__main__":
    main()
