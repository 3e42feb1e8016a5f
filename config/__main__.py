"""Command line interface for checking configuration loading"""
from . import settings_conf
from pathlib import Path

SECRET_KEYS = {'jwt_secret', 'classifier_api_key'}

def main():
    """Display loaded configuration and write an example settings file"""
    print("\nSettings Configuration:")
    print("-" * 50)
    for key, value in settings_conf.items():
        if key in SECRET_KEYS and value:
            value = '********'
        print(f"{key}: {value}")

    examples_dir = Path("examples")
    examples_dir.mkdir(exist_ok=True)

    with open(examples_dir / "settings.conf.example", "w") as f:
        f.write("""[DEFAULT]
# PostgreSQL connection URL
db_url = postgresql://postgres@localhost:5432/marketplace
# Secret shared with the identity provider that issues session tokens;
# empty generates a random one at startup
jwt_secret =
# Content classifier endpoint; leave empty to rely on the fail policy
classifier_url =
classifier_api_key =
classifier_timeout = 30
classifier_max_attempts = 2
# open: classifier failure marks items clean, closed: items stay pending
scan_fail_policy = open
scan_workers = 2
manifest_marker = fxmanifest.lua
""")
    print(f"\nWrote {examples_dir / 'settings.conf.example'}")

if __name__ == "__main__":
    main()
