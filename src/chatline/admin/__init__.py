"""HTTP admin surface for the chat transcript."""
