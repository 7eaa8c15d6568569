# "mega" … "say hello world" → speaks "hello world"
if arguments:
    speak(" ".join(arguments))
else:
    speak("Say what?")
