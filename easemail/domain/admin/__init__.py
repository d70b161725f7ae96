"""Admin domain - organization wizard and user administration"""
