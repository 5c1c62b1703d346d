"""GED math quizzer: AI-generated questions in a timed terminal quiz."""
