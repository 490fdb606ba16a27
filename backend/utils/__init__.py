# Utilities: configuration, response cleaning, errors
