# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

import json
import logging
import os
import time

from menu_extraction import get_config, metrics, s3
from menu_extraction.utils import build_s3_uri
from menu_extraction.pipeline import OptimizedExtractionPipeline

logger = logging.getLogger()
logger.setLevel(os.environ.get("LOG_LEVEL", "INFO"))
logging.getLogger('menu_extraction.bedrock.client').setLevel(os.environ.get("BEDROCK_LOG_LEVEL", "INFO"))

OUTPUT_PREFIX = os.environ.get('OUTPUT_PREFIX', 'extractions')


def handler(event, context):
    """
    Run the optimized menu extraction for one job's documents
    """
    logger.info(f"Event: {json.dumps(event, default=str)[:2000]}")

    job_id = event.get("jobId")
    if not job_id:
        raise ValueError("No jobId found in event")
    documents = event.get("documents") or []
    if not documents:
        raise ValueError(f"No documents found in event for job {job_id}")

    config = get_config()
    pipeline = OptimizedExtractionPipeline(config=config)

    metrics.put_metric('ExtractionJobs', 1)

    t0 = time.time()
    result = pipeline.process_documents(documents)
    t1 = time.time()
    logger.info(f"Total extraction time for job {job_id}: {t1-t0:.2f} seconds")

    response = {"jobId": job_id, **result.to_dict()}

    output_bucket = os.environ.get('OUTPUT_BUCKET')
    if output_bucket:
        key = f"{OUTPUT_PREFIX}/{job_id}/extraction_result.json"
        s3.write_content(response, output_bucket, key)
        response["resultUri"] = build_s3_uri(output_bucket, key)

    logger.info(
        f"Job {job_id}: {len(result.phase3.enriched_items)} items, "
        f"{len(result.phase2.failed_tasks)} failed tasks, "
        f"cost {result.cost_analysis.formatted_total}"
    )
    return response
