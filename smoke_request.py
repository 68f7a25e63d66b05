import os

import requests
from dotenv import load_dotenv

load_dotenv()

# --- CONFIGURATION ---
# Start the server first: python main.py
# The structured log line shows up on the server's stdout, not here.
URL = os.getenv("SERVICE_URL", "http://127.0.0.1:8080/")


def main():
    try:
        print(f"Sending GET to {URL}...")
        response = requests.get(URL, timeout=5)

        print(f"Status: {response.status_code}")
        print(f"Body: {response.text!r}")

    except requests.RequestException as e:
        print(f"Error: {e}")


if __name__ == "__main__":
    main()
