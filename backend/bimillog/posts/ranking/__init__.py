"""Popularity scoring, decay and hot-list refresh jobs."""
