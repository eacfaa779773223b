import sys
from datetime import timedelta
from routes.deps import create_access_token
from logging_config import setup_logging

setup_logging(file_logging=False)

def get_token(user_id: str):
    # Same claims the auth service issues; only "sub" is read by this API
    token = create_access_token({"sub": user_id}, expires_delta=timedelta(hours=12))
    print(f"TOKEN={token}")
    print(f"USER_ID={user_id}")

if __name__ == "__main__":
    if len(sys.argv) != 2:
        print("usage: python get_test_token.py <user_id>")
        sys.exit(1)
    get_token(sys.argv[1])
