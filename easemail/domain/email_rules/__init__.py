"""Email rules domain - condition/action rules run against the local message store"""
