"""Activities, meal substitutions and enrollments."""
