# shelfledger/core/logging.py
import logging
import sys

# 第三方 logger：默认只留 WARNING，DEBUG 时放开 SQL
_NOISY = ("aiosqlite", "asyncio", "alembic.runtime.migration")


def setup_logging(level: str = "INFO") -> None:
    """
    进程级日志，main.py 导入时调用一次：
    - 根 logger 只挂一个 stdout handler（重复调用不会叠加输出）
    - 业务日志统一在 shelfledger.* 之下（inventory / transfer / procurement / sale / db）
    """
    lvl = level.upper()
    root = logging.getLogger()
    root.setLevel(lvl)
    for h in list(root.handlers):
        root.removeHandler(h)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
    root.addHandler(handler)

    logging.getLogger("shelfledger").setLevel(lvl)
    logging.getLogger("uvicorn.access").setLevel(logging.INFO)
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if lvl == "DEBUG" else logging.WARNING
    )
    for name in _NOISY:
        logging.getLogger(name).setLevel(logging.WARNING)
