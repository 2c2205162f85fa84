"""Application services used by the CommandHandler."""
