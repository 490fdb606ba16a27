# Capture module: client-side answer recording and channel client
