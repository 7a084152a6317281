"""Movie thumbnail sheet generation: scheduling, extraction, layout and batch runs."""
