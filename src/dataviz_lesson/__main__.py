from __future__ import annotations

import logging
import sys

from dataviz_lesson.core.charts import ChartError
from dataviz_lesson.core.data_loader import DataLoaderError
from dataviz_lesson.core.export import ExportError
from dataviz_lesson.core.transforms import TransformError
from dataviz_lesson.lesson import run_lesson

logger = logging.getLogger(__name__)


def main() -> int:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        result = run_lesson()
    except (DataLoaderError, TransformError, ChartError, ExportError) as exc:
        logger.error("%s: %s", type(exc).__name__, exc)
        return 1

    logger.info("Rendered %d charts; last one saved to %s", len(result.rendered), result.export_path)
    result.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
