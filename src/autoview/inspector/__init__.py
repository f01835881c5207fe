"""Element inspection inside an embedded preview."""
