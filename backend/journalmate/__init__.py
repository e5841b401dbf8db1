"""JournalMate plan copy backend."""
