"""HTTP interface to the fee engine."""
