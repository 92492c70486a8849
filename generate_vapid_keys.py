"""
Generate the VAPID key pair used to push budget alerts.

Run once:
    python generate_vapid_keys.py

Copy the output into your .env file.
"""
import base64

from py_vapid import Vapid


def generate_vapid_keys() -> tuple[str, str]:
    """
    Returns (application server key, private key PEM).

    The server key is the uncompressed EC point, URL-safe base64 without
    padding, as browsers expect it in pushManager.subscribe().
    """
    vapid = Vapid()
    vapid.generate_keys()

    numbers = vapid.public_key.public_numbers()
    point = b"\x04" + numbers.x.to_bytes(32, "big") + numbers.y.to_bytes(32, "big")
    public_key = base64.urlsafe_b64encode(point).rstrip(b"=").decode()

    private_pem = vapid.private_pem()
    if isinstance(private_pem, bytes):
        private_pem = private_pem.decode()
    return public_key, private_pem


def main():
    public_key, private_pem = generate_vapid_keys()
    # .env values are single-line
    private_line = private_pem.strip().replace("\n", "\\n")
    print("Add these to your .env:\n")
    print(f"VAPID_PUBLIC_KEY={public_key}")
    print(f"VAPID_PRIVATE_KEY={private_line}")
    print("VAPID_MAILTO=mailto:you@example.com")


if __name__ == "__main__":
    main()
