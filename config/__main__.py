"""Command line interface for testing configuration loading"""
from . import settings_conf
from pathlib import Path

def main():
    """Display loaded configuration"""
    print("\nSettings Configuration:")
    print("-" * 50)
    for key, value in settings_conf.items():
        if key == 'jwt_secret':
            value = '********' if value else '(generated at startup)'
        print(f"{key}: {value}")

    # Save example configuration file
    examples_dir = Path("examples")
    examples_dir.mkdir(exist_ok=True)

    with open(examples_dir / "settings.conf.example", "w") as f:
        f.write("""[DEFAULT]
# Database connection URL
db_url = postgresql://root@localhost:26257/storefront?sslmode=disable
# Token signing secret, leave empty to generate one per process
jwt_secret =
jwt_algorithm = HS256
# Token lifetimes per credential class
buyer_token_expiry_minutes = 1440
shop_token_expiry_minutes = 10080
# bcrypt cost factor, at least 10
bcrypt_rounds = 10
db_min_pool_size = 2
db_max_pool_size = 20
db_command_timeout = 60
""")

if __name__ == "__main__":
    main()
