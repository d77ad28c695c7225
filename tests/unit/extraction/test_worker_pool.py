# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

"""
Unit tests for the WorkerPool class.
"""

import json
import threading
import time
from unittest.mock import MagicMock

import pytest

from menu_extraction.extraction import TaskQueue, WorkerPool
from menu_extraction.models import Complexity, ModelTier


def _items_reply(count, category="Mains", location=None):
    items = []
    for i in range(count):
        item = {"name": f"Dish {i}", "basePrice": f"${i + 1}.00", "category": category}
        if location:
            item["sourceInfo"] = {"filename": "menu.pdf", "location": location}
        items.append(item)
    return json.dumps(items)


TRUNCATED = '[{"name": "Dish 0", "basePrice": "$1.00"}, {"name": "Dish'


@pytest.mark.unit
class TestWorkerPool:
    @pytest.fixture
    def oracle(self):
        return MagicMock()

    @pytest.fixture
    def sleep(self):
        return MagicMock()

    @pytest.fixture
    def pool(self, config, oracle, mock_sampler, sleep):
        return WorkerPool(config, oracle, mock_sampler, sleep=sleep)

    def test_one_failing_task_does_not_stop_others(self, pool, oracle, sleep, make_task):
        tasks = [make_task(number=i) for i in range(1, 11)]
        active = []
        lock = threading.Lock()

        def generate(tier, prompt, images=None, max_tokens=None, temperature=None, context=None):
            with lock:
                active.append(context)
            time.sleep(0.01)
            if context == "task_7":
                return TRUNCATED
            return _items_reply(5)

        oracle.generate.side_effect = generate

        results = pool.run(tasks)

        assert [result.task_id for result in results] == [task.task_id for task in tasks]
        assert 1 <= pool.max_in_flight <= 4
        failed = [result for result in results if not result.success]
        assert [result.task_id for result in failed] == ["task_7"]
        assert failed[0].api_calls == 4
        assert failed[0].retry_count == 3
        assert failed[0].items == []
        assert "truncated" in failed[0].error
        assert all(len(result.items) == 5 for result in results if result.success)
        assert all(result.api_calls == 1 for result in results if result.success)
        assert sleep.call_count == 3
        assert active.count("task_7") == 4

    def test_low_yield_is_retried(self, pool, oracle, sleep, make_task):
        task = make_task(estimated_items=40)
        oracle.generate.side_effect = [_items_reply(2), _items_reply(20)]

        result = pool.process_task(task)

        assert result.success is True
        assert len(result.items) == 20
        assert result.api_calls == 2
        assert result.retry_count == 1
        assert task.attempts == 2
        sleep.assert_called_once()

    def test_small_estimates_skip_yield_check(self, pool, oracle, make_task):
        oracle.generate.return_value = _items_reply(1)
        result = pool.process_task(make_task(estimated_items=10))
        assert result.success is True
        assert result.api_calls == 1

    @pytest.mark.parametrize("first_reply", ['{"items": []}', "I could not find a menu."])
    def test_malformed_reply_is_retried(self, pool, oracle, make_task, first_reply):
        oracle.generate.side_effect = [first_reply, _items_reply(3)]
        result = pool.process_task(make_task())
        assert result.success is True
        assert result.api_calls == 2

    @pytest.mark.parametrize("template", [
        "Here are the extracted items:\n```json\n{items}\n```",
        "```json\n{items}\n```\nLet me know if anything is missing.",
    ])
    def test_fenced_reply_with_prose_succeeds_first_time(self, pool, oracle, sleep, make_task, template):
        oracle.generate.return_value = template.replace("{items}", _items_reply(3))

        result = pool.process_task(make_task())

        assert result.success is True
        assert len(result.items) == 3
        assert result.api_calls == 1
        sleep.assert_not_called()

    def test_oracle_errors_count_as_attempts(self, pool, oracle, sleep, make_task):
        oracle.generate.side_effect = RuntimeError("ThrottlingException")
        result = pool.process_task(make_task(max_retries=5, complexity=Complexity.HIGH))
        assert result.success is False
        assert result.api_calls == 6
        assert result.error == "ThrottlingException"
        assert sleep.call_count == 5

    def test_backoff_grows(self, pool, oracle, sleep, make_task):
        oracle.generate.return_value = TRUNCATED
        pool.process_task(make_task(max_retries=3))
        delays = [call.args[0] for call in sleep.call_args_list]
        assert delays[0] < delays[1] < delays[2]
        assert all(delay <= 30 * 1.1 for delay in delays)

    def test_context_built_once(self, pool, oracle, mock_sampler, make_task):
        oracle.generate.side_effect = [TRUNCATED, _items_reply(3)]
        pool.process_task(make_task())
        mock_sampler.text_sample.assert_called_once()
        assert mock_sampler.text_sample.call_args.kwargs["limit_spreadsheet"] is False

    def test_request_uses_fast_tier_and_token_limit(self, pool, oracle, make_task):
        oracle.generate.return_value = _items_reply(3)
        pool.process_task(make_task())
        args, kwargs = oracle.generate.call_args
        assert args[0] == ModelTier.FAST
        assert kwargs["max_tokens"] == 4500
        assert kwargs["context"] == "task_1"
        assert kwargs["images"] is None
        assert "Classic Burger" in args[1]

    def test_segment_prompt_names_its_part(self, pool, oracle, make_task):
        oracle.generate.return_value = _items_reply(3)
        pool.process_task(make_task(estimated_items=5, segment=(2, 3), name="board.png",
                                    media_type="image/png"))
        args, kwargs = oracle.generate.call_args
        assert "board.png (Part 2/3)" in args[1]
        assert "ATTACHED IMAGE" in args[1]
        assert kwargs["images"] == [b"jpeg-bytes"]

    def test_items_default_to_batch_location(self, pool, oracle, make_task):
        oracle.generate.return_value = _items_reply(2)
        result = pool.process_task(make_task(segment=(1, 2)))
        assert {item.source_info.location for item in result.items} == {"menu.pdf (Part 1/2)"}
        assert {item.source_info.filename for item in result.items} == {"menu.pdf"}

    def test_empty_task_list(self, pool):
        assert pool.run([]) == []


@pytest.mark.unit
def test_task_queue_hands_out_each_task_once(make_task):
    tasks = [make_task(number=i) for i in range(1, 4)]
    queue = TaskQueue(tasks)
    assert len(queue) == 3
    assert [queue.next().task_id for _ in range(3)] == ["task_1", "task_2", "task_3"]
    assert queue.next() is None
