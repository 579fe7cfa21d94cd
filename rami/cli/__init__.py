"""Terminal front end for Tunisian Rami."""
