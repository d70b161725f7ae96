"""Messages domain - local message store and user labels"""
