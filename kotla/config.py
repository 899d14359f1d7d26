import os
import pathlib

from dotenv import load_dotenv

load_dotenv()

PACKAGE_DIR = pathlib.Path(__file__).resolve().parent

# Empty seed url means the number of the day is derived locally.
seed_url = os.getenv("KOTLA_SEED_URL", "")
seed_timeout = float(os.getenv("KOTLA_SEED_TIMEOUT", "10"))
data_dir = pathlib.Path(os.getenv("KOTLA_DATA_DIR", str(PACKAGE_DIR.parent / ".kotla")))
cities_file = pathlib.Path(os.getenv("KOTLA_CITIES_FILE", str(PACKAGE_DIR / "data" / "cities.csv")))
terminal_delay = float(os.getenv("KOTLA_TERMINAL_DELAY", "3.0"))
log_level = os.getenv("KOTLA_LOG_LEVEL", "INFO").upper()

if __name__ == "__main__":
    print(seed_url, seed_timeout, data_dir, cities_file, terminal_delay, log_level)
