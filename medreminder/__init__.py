"""Medicine reminder dose scheduling service"""
