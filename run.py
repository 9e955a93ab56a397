# run.py
from oracle_api.server import main

if __name__ == "__main__":
    """
    Entry point for running the API locally (`python run.py`).

    Running this script as the main program keeps the project root on the
    path. Port, RPC endpoint and mode come from the environment or from
    `.env` / `.env.{APP_ENV}`; see oracle_api/config/base.py.

    If PORT is taken, the process holding it is killed; if the port still
    cannot be bound, the next port is tried (up to PORT_MAX_ATTEMPTS).
    """
    main()
