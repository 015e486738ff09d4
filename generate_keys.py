"""Fill the generated secrets in .env from .env.template.

TOKEN_ENCRYPTION_KEY encrypts platform access tokens at rest (Fernet).
ADMIN_SECRET_KEY signs the session cookie and is the admin panel password.
"""

import os
import secrets

from cryptography.fernet import Fernet

GENERATED = {
    "TOKEN_ENCRYPTION_KEY": Fernet.generate_key().decode(),
    "ADMIN_SECRET_KEY": secrets.token_urlsafe(32),
}

template_path = ".env.template"
env_path = ".env"

for name, value in GENERATED.items():
    print(f"Generated {name}: {value}")

if os.path.exists(template_path):
    with open(template_path, "r") as f:
        lines = f.read().splitlines()

    new_lines = []
    for line in lines:
        name = line.split("=", 1)[0]
        if name in GENERATED:
            new_lines.append(f"{name}={GENERATED[name]}")
        else:
            new_lines.append(line)

    with open(env_path, "w") as f:
        f.write("\n".join(new_lines) + "\n")

    print(f"Successfully wrote to {env_path}")

else:
    print(f"Error: {template_path} not found. Please ensure it exists.")
