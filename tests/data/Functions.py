def f():
    '''f'''
    pass

def g():
    '''g'''
    return 1

def h():
    '''h'''
    def nested():
        pass
    return nested

class C:
    '''C'''
    def i(self):
        '''i'''
        pass

    def j(self):
        '''j'''
        pass

    class C2:
        '''C2'''
        def k(self):
            '''k'''
            pass
