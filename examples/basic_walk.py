#!/usr/bin/env python3
"""Basic usage example for the random-walk execution context.

This example demonstrates how to:
1. Load properties for a run
2. Share values between nodes through the state
3. Bound the walk with a visit budget
4. Write rows through the shared multi-table batch writer
"""

import random
import sys

from randomwalk import State, VisitBudgetExceededError, load_properties
from randomwalk.logging_config import setup_logging


def create_node(state):
    connector = state.get_connector()
    connector.execute("CREATE TABLE IF NOT EXISTS walk_log (step INTEGER, node TEXT)")
    state.set("table", "walk_log")


def write_node(state):
    writer = state.get_multi_table_batch_writer()
    writer.get_batch_writer(state.get("table")).add_mutation(
        {"step": state.visit_count, "node": "write"}
    )


def main(path):
    setup_logging(enable_file=False)
    with State(load_properties(path)) as state:
        state.set_max_visits(50)
        nodes = [write_node]
        try:
            state.visited_node()
            create_node(state)
            while True:
                state.visited_node()
                random.choice(nodes)(state)
        except VisitBudgetExceededError as e:
            print(f"Walk finished after {e.limit} visits")
        print(f"Final state: {state.get_map()}")


if __name__ == "__main__":
    main(sys.argv[1] if len(sys.argv) > 1 else "walk.properties")
