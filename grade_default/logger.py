import logging
import json
from pathlib import Path

LOG_DIR = Path("logs")
LOG_DIR.mkdir(exist_ok=True)

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(message)s",
    handlers=[
        logging.FileHandler(LOG_DIR / "grade_default.log"),
        logging.StreamHandler(),
    ],
)

logger = logging.getLogger("grade_default")


def _round(value):
    if isinstance(value, float):
        return round(value, 6)
    return value


def log_event(event: str, **fields):
    payload = {"event": event}
    payload.update({k: _round(v) for k, v in fields.items()})
    logger.info(json.dumps(payload, default=str))


def log_model_metrics(grade, model, auc, accuracy, n_train, n_test):
    log_event(
        "model_metrics",
        grade=grade,
        model=model,
        auc=None if auc is None else float(auc),
        accuracy=float(accuracy),
        n_train=int(n_train),
        n_test=int(n_test),
    )
