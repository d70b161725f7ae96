"""Calendar domain - events, range queries and RSVP"""
