# Speech module: transcription pipeline and speech synthesis
