# "mega" … "what time is it"
import time

speak(time.strftime("It is %H:%M."))
