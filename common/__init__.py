"""Code shared by the receiver and sender packages."""
