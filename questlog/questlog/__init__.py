"""Project bootstrap for the questlog tracker."""
